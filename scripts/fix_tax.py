# scripts/fix_tax.py
"""
Backfill tax percent and currency on invoices created before they were
derived from the job's country, then refresh the stored totals.

Usage:
    python -m scripts.fix_tax [--dry-run]
"""

import argparse
import logging

from sqlalchemy import select, update

from app.db.engine import get_engine
from app.db.schema import invoices, jobs
from app.services.billing import (
    ZERO,
    compute_totals,
    derive_tax_defaults,
    extras_from_store,
    invoice_status,
    to_decimal,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def fix_invoice(conn, row) -> bool:
    """Correct one invoice in place. Returns True when anything changed."""
    country = row["country"] or row["job_country"] or ""
    default_tax, default_currency = derive_tax_defaults(country)

    # Zero tax on these invoices means "never set", not "tax exempt"
    tax_percent = to_decimal(row["tax_percent"])
    if tax_percent == ZERO:
        tax_percent = default_tax
    currency = row["currency"] or default_currency

    totals = compute_totals(
        row["base_cost"],
        [e["amount"] for e in extras_from_store(row["extra_costs"])],
        row["discount"],
        tax_percent,
        row["paid_amount"],
    )

    values = {
        "tax_percent": tax_percent,
        "currency": currency,
        "final_cost": totals.subtotal,
        "final_sale": totals.total,
        "paid_amount": totals.paid_amount,
        "status": invoice_status(totals.paid_amount, totals.total, row["status"]),
    }

    changed = (
        row["currency"] != currency
        or row["status"] != values["status"]
        or any(
            to_decimal(row[key]) != to_decimal(values[key])
            for key in ("tax_percent", "final_cost", "final_sale", "paid_amount")
        )
    )
    if changed:
        conn.execute(update(invoices).where(invoices.c.id == row["id"]).values(**values))
    return changed


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--dry-run", action="store_true", help="report changes without saving")
    args = parser.parse_args(argv)

    engine = get_engine()
    n_checked = 0
    n_updated = 0

    with engine.connect() as conn:
        rows = conn.execute(
            select(invoices, jobs.c.country.label("job_country"))
            .select_from(invoices.outerjoin(jobs, invoices.c.job_id == jobs.c.id))
        ).mappings().all()

        for row in rows:
            n_checked += 1
            if fix_invoice(conn, row):
                n_updated += 1
                logger.info("Updated: %s", row["invoice_number"])

        if args.dry_run:
            conn.rollback()
        else:
            conn.commit()

    logger.info("Invoices checked:  %s", n_checked)
    logger.info("Invoices updated:  %s%s", n_updated, " (dry run, not saved)" if args.dry_run else "")


if __name__ == "__main__":
    main()
