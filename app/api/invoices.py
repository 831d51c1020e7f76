# app/api/invoices.py

import logging
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import and_, case, delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentAdmin, DbEngine
from app.api.jobs import fetch_job, row_to_job
from app.config import settings
from app.db.schema import invoices, jobs
from app.models.invoices import (
    ChargesUpdate,
    DeleteResponse,
    InvoiceCreate,
    InvoiceFull,
    InvoiceSummary,
    PaymentIn,
    TotalsOut,
)
from app.services.billing import (
    ZERO,
    BillingTotals,
    charge_lines,
    compute_totals,
    derive_tax_defaults,
    extras_from_store,
    extras_to_store,
    require_non_negative,
    resolve_tax_defaults,
    split_transport_row,
    standard_extra_costs,
    to_decimal,
    validate_charges,
    validate_payment,
)
from app.services.invoice_pdf import render_invoice_pdf

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


# ---- Helpers ----

def invoice_totals(row) -> BillingTotals:
    return compute_totals(
        row["base_cost"],
        [e["amount"] for e in extras_from_store(row["extra_costs"])],
        row["discount"],
        row["tax_percent"],
        row["paid_amount"],
    )


def invoice_currency(row) -> str:
    if row["currency"]:
        return row["currency"]
    return derive_tax_defaults(row["country"] or row.get("job_country"))[1]


def _summary_select():
    return (
        select(
            invoices,
            jobs.c.job_number.label("job_number"),
            jobs.c.country.label("job_country"),
        )
        .select_from(invoices.outerjoin(jobs, invoices.c.job_id == jobs.c.id))
    )


def _load_invoice(conn, invoice_id: int):
    return conn.execute(
        _summary_select().where(invoices.c.id == invoice_id)
    ).mappings().first()


def _row_to_summary(row) -> InvoiceSummary:
    totals = invoice_totals(row)
    return InvoiceSummary(
        id=row["id"],
        invoice_number=row["invoice_number"],
        job_number=row["job_number"],
        client_name=row["client_name"],
        status=row["status"],
        currency=invoice_currency(row),
        total=totals.total,
        paid_amount=totals.paid_amount,
        balance=totals.balance,
        tax_percent=row["tax_percent"],
        country=row["country"] or row["job_country"] or "",
        created_at=row["created_at"],
    )


def _row_to_full(row, job_row) -> InvoiceFull:
    totals = invoice_totals(row)
    extras = extras_from_store(row["extra_costs"])
    return InvoiceFull(
        id=row["id"],
        invoice_number=row["invoice_number"],
        job_id=row["job_id"],
        job=row_to_job(job_row) if job_row is not None else None,
        client_name=row["client_name"],
        client_address=row["client_address"],
        client_gst=row["client_gst"],
        client_mobile=row["client_mobile"],
        country=row["country"],
        base_cost=row["base_cost"],
        extra_costs=extras,
        charge_lines=charge_lines(row["base_cost"], extras),
        discount=row["discount"],
        tax_percent=row["tax_percent"],
        currency=invoice_currency(row),
        final_cost=row["final_cost"],
        final_sale=row["final_sale"],
        paid_amount=row["paid_amount"],
        status=row["status"],
        notes=row["notes"],
        terms=row["terms"],
        totals=TotalsOut(**asdict(totals)),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def next_invoice_number(conn, year: Optional[int] = None) -> str:
    """
    Next number in the PREFIX-YYYY-NNNN sequence for the year.

    Follows the highest existing sequence rather than a row count, so
    deleting an older invoice never hands out a number still in use.
    """
    year = year or datetime.now().year
    stem = f"{settings.INVOICE_PREFIX}-{year}-"
    numbers = conn.execute(
        select(invoices.c.invoice_number).where(invoices.c.invoice_number.like(stem + "%"))
    ).scalars()

    highest = 0
    for number in numbers:
        suffix = number[len(stem):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{stem}{highest + 1:04d}"


# ---- Routes ----

@router.get("", response_model=List[InvoiceSummary])
def list_invoices(engine: DbEngine, admin: CurrentAdmin) -> List[InvoiceSummary]:
    """
    Invoice summaries for the billing panel, newest first.
    """
    with engine.connect() as conn:
        rows = conn.execute(
            _summary_select().order_by(invoices.c.created_at.desc(), invoices.c.id.desc())
        ).mappings().all()

    return [_row_to_summary(row) for row in rows]


@router.get("/{invoice_id}/full", response_model=InvoiceFull)
def get_invoice_full(invoice_id: int, engine: DbEngine, admin: CurrentAdmin) -> InvoiceFull:
    with engine.connect() as conn:
        row = _load_invoice(conn, invoice_id)
        if row is None:
            raise HTTPException(status_code=404, detail="Invoice not found")
        job_row = fetch_job(conn, row["job_id"])

    return _row_to_full(row, job_row)


@router.post("/from-job/{job_id}", response_model=InvoiceFull, status_code=status.HTTP_201_CREATED)
def create_invoice_from_job(
    job_id: int,
    engine: DbEngine,
    admin: CurrentAdmin,
    body: Optional[InvoiceCreate] = None,
) -> InvoiceFull:
    """
    Raise an invoice for a job.

    The base cost comes from the job, the standard charge rows are seeded
    at zero, and tax/currency default from the job's country unless given.
    """
    body = body or InvoiceCreate()

    try:
        with engine.begin() as conn:
            job_row = fetch_job(conn, job_id)
            if job_row is None:
                raise HTTPException(status_code=404, detail="Job not found")

            country = job_row["country"] or ""
            tax_percent, currency = resolve_tax_defaults(country, body.tax_percent, body.currency)
            base_cost = to_decimal(job_row["cost"])
            extras = standard_extra_costs()
            totals = compute_totals(base_cost, [e["amount"] for e in extras], ZERO, tax_percent)

            result = conn.execute(
                insert(invoices).values(
                    invoice_number=next_invoice_number(conn),
                    job_id=job_id,
                    client_name=job_row["client_name"] or "Walk-in Customer",
                    client_address=job_row["route_to"] or "",
                    client_gst=body.client_gst,
                    client_mobile=body.client_mobile,
                    country=country,
                    base_cost=base_cost,
                    extra_costs=extras_to_store(extras),
                    discount=ZERO,
                    tax_percent=tax_percent,
                    currency=currency,
                    final_cost=totals.subtotal,
                    final_sale=totals.total,
                    paid_amount=ZERO,
                    status="draft" if body.draft else "billed",
                    notes=body.notes,
                    terms=body.terms,
                )
            )
            row = _load_invoice(conn, result.inserted_primary_key[0])
    except IntegrityError:
        logger.warning("Invoice number collision while invoicing job %s", job_id)
        raise HTTPException(status_code=409, detail="Invoice number already taken, try again")

    logger.info(
        "Invoice %s raised for job %s by %s (%s %s)",
        row["invoice_number"], job_row["job_number"], admin.username, totals.total, currency,
    )
    return _row_to_full(row, job_row)


@router.put("/{invoice_id}/pay", response_model=InvoiceSummary)
def record_payment(invoice_id: int, body: PaymentIn, engine: DbEngine, admin: CurrentAdmin) -> InvoiceSummary:
    """
    Add a payment to the invoice.

    Applied as one conditional UPDATE so concurrent payments cannot lose
    each other: paid_amount is incremented and capped at the stored total,
    and the invoice flips to "paid" when the cap is reached.
    """
    amount = validate_payment(body.amount)

    # Rounded in SQL: SQLite stores Numeric as REAL and 0.7 + 0.1 < 0.8 there
    new_paid = func.round(invoices.c.paid_amount + amount, 3, type_=invoices.c.paid_amount.type)
    total = func.round(invoices.c.final_sale, 3, type_=invoices.c.final_sale.type)
    stmt = (
        update(invoices)
        .where(invoices.c.id == invoice_id)
        .values(
            paid_amount=case(
                (new_paid > total, invoices.c.final_sale),
                else_=new_paid,
            ),
            status=case(
                (and_(total > 0, new_paid >= total), "paid"),
                else_=invoices.c.status,
            ),
        )
    )

    with engine.begin() as conn:
        result = conn.execute(stmt)
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Invoice not found")
        row = _load_invoice(conn, invoice_id)

    logger.info(
        "Payment of %s recorded on invoice %s by %s (paid %s of %s)",
        amount, row["invoice_number"], admin.username, row["paid_amount"], row["final_sale"],
    )
    return _row_to_summary(row)


@router.put("/{invoice_id}/extra-costs", response_model=InvoiceSummary)
def update_charges(invoice_id: int, body: ChargesUpdate, engine: DbEngine, admin: CurrentAdmin) -> InvoiceSummary:
    """
    Replace the charge breakdown, discount and tax percent.

    Stored final_cost/final_sale are refreshed so readers never recompute
    them, and a paid amount above the new total is pulled down to it.
    """
    extras = validate_charges(
        [charge.model_dump() for charge in body.extra_costs],
        body.discount,
        body.tax_percent,
    )
    transport_cost, extras = split_transport_row(extras)
    discount = to_decimal(body.discount)

    with engine.begin() as conn:
        current = _load_invoice(conn, invoice_id)
        if current is None:
            raise HTTPException(status_code=404, detail="Invoice not found")

        if body.base_cost is not None:
            base_cost = require_non_negative(body.base_cost, "Base cost must be non-negative")
        elif transport_cost is not None:
            base_cost = transport_cost
        else:
            base_cost = to_decimal(current["base_cost"])

        tax_percent = (
            to_decimal(body.tax_percent) if body.tax_percent is not None
            else to_decimal(current["tax_percent"])
        )

        totals = compute_totals(base_cost, [e["amount"] for e in extras], discount, tax_percent)

        paid = func.round(invoices.c.paid_amount, 3, type_=invoices.c.paid_amount.type)
        if totals.total > ZERO:
            new_status = case(
                (paid >= totals.total, "paid"),
                (invoices.c.status == "paid", "billed"),
                else_=invoices.c.status,
            )
        else:
            new_status = case((invoices.c.status == "paid", "billed"), else_=invoices.c.status)

        conn.execute(
            update(invoices)
            .where(invoices.c.id == invoice_id)
            .values(
                extra_costs=extras_to_store(extras),
                base_cost=base_cost,
                discount=discount,
                tax_percent=tax_percent,
                country=body.country or current["country"],
                final_cost=totals.subtotal,
                final_sale=totals.total,
                paid_amount=case((paid > totals.total, totals.total), else_=paid),
                status=new_status,
            )
        )
        row = _load_invoice(conn, invoice_id)

    logger.info(
        "Charges updated on invoice %s by %s: total %s",
        row["invoice_number"], admin.username, totals.total,
    )
    return _row_to_summary(row)


@router.delete("/{invoice_id}", response_model=DeleteResponse)
def delete_invoice(invoice_id: int, engine: DbEngine, admin: CurrentAdmin) -> DeleteResponse:
    with engine.begin() as conn:
        result = conn.execute(delete(invoices).where(invoices.c.id == invoice_id))

    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail="Invoice not found")

    logger.info("Invoice %s deleted by %s", invoice_id, admin.username)
    return DeleteResponse()


@router.get("/{invoice_id}/pdf")
def invoice_pdf(invoice_id: int, engine: DbEngine, admin: CurrentAdmin) -> Response:
    with engine.connect() as conn:
        row = _load_invoice(conn, invoice_id)
        if row is None:
            raise HTTPException(status_code=404, detail="Invoice not found")
        job_row = fetch_job(conn, row["job_id"])

    invoice = dict(row)
    invoice["extra_costs"] = extras_from_store(row["extra_costs"])
    invoice["currency"] = invoice_currency(row)

    pdf = render_invoice_pdf(invoice, dict(job_row) if job_row is not None else None)

    filename = f"invoice-{row['invoice_number'] or row['id']}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"inline; filename={filename}"},
    )
