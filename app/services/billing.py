# app/services/billing.py
"""
Invoice arithmetic.

Every figure shown to staff, stored on an invoice or printed on a PDF goes
through compute_totals(), in this order:

    subtotal   = base_cost + sum(extras)
    taxable    = max(0, subtotal - discount)
    tax_amount = round3(taxable * tax_percent / 100)
    total      = round3(taxable + tax_amount)
    balance    = max(0, total - paid)

Amounts are kept to thousandths so 3-decimal currencies (BHD) survive.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

THOUSANDTH = Decimal("0.001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

TRANSPORT_LABEL = "Transport service charges"

# Seeded as zero-amount extras on every new invoice; the transport row
# mirrors the invoice base cost instead.
STANDARD_EXTRA_LABELS = (
    "Service Charge - Clearance Only",
    "Health Charges - MOH Paid",
    "BAS Charges - Port Paid",
    "Service - Transport & Delivery Charges",
)
STANDARD_LABELS = (TRANSPORT_LABEL,) + STANDARD_EXTRA_LABELS

INDIA = (Decimal("18"), "INR")
BAHRAIN = (Decimal("10"), "BHD")


class BillingError(ValueError):
    """Raised when charge or payment input cannot be billed."""


@dataclass(frozen=True)
class BillingTotals:
    subtotal: Decimal
    taxable: Decimal
    tax_amount: Decimal
    total: Decimal
    paid_amount: Decimal
    balance: Decimal


def round3(value) -> Decimal:
    return to_decimal(value).quantize(THOUSANDTH, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise BillingError("Amounts must be numeric")
    try:
        # str() first so floats read back from the store keep their short repr
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise BillingError(f"Amounts must be numeric, got {value!r}")
    if not result.is_finite():
        raise BillingError(f"Amounts must be finite, got {value!r}")
    return result


def compute_totals(
    base_cost,
    extra_amounts: Iterable = (),
    discount=0,
    tax_percent=0,
    paid_amount=0,
) -> BillingTotals:
    subtotal = to_decimal(base_cost) + sum((to_decimal(a) for a in extra_amounts), ZERO)
    taxable = max(ZERO, subtotal - to_decimal(discount))
    tax_amount = round3(taxable * to_decimal(tax_percent) / HUNDRED)
    total = round3(taxable + tax_amount)

    paid = min(max(ZERO, to_decimal(paid_amount)), total)
    balance = max(ZERO, total - paid)

    return BillingTotals(
        subtotal=round3(subtotal),
        taxable=round3(taxable),
        tax_amount=tax_amount,
        total=total,
        paid_amount=round3(paid),
        balance=round3(balance),
    )


def derive_tax_defaults(country: Optional[str]) -> Tuple[Decimal, str]:
    """Default (tax_percent, currency) for a job's country."""
    if "india" in (country or "").lower():
        return INDIA
    return BAHRAIN


def resolve_tax_defaults(
    country: Optional[str],
    tax_percent=None,
    currency: Optional[str] = None,
) -> Tuple[Decimal, str]:
    """Fill in whichever of tax_percent / currency is not explicitly set."""
    default_tax, default_currency = derive_tax_defaults(country)
    tax = to_decimal(tax_percent) if tax_percent is not None else default_tax
    return tax, (currency or default_currency)


def require_non_negative(value, message: str) -> Decimal:
    amount = to_decimal(value)
    if amount < ZERO:
        raise BillingError(message)
    return amount


def validate_charges(extra_costs: List[dict], discount=0, tax_percent=0) -> List[dict]:
    """
    Check an edited charge breakdown and return it normalized.

    Each row needs a non-empty label and a non-negative numeric amount.
    """
    normalized = []
    for row in extra_costs:
        label = str(row.get("label") or "").strip()
        if not label:
            raise BillingError("Each charge must have a label")
        amount = require_non_negative(row.get("amount"), f"Charge {label!r} cannot be negative")
        normalized.append({"label": label, "amount": round3(amount)})

    require_non_negative(discount, "Discount must be non-negative")
    require_non_negative(tax_percent, "Tax % must be non-negative")

    return normalized


def validate_payment(amount) -> Decimal:
    try:
        value = to_decimal(amount)
    except BillingError:
        raise BillingError("Payment amount must be a positive number")
    if value <= ZERO:
        raise BillingError("Payment amount must be a positive number")
    return round3(value)


def clamp_payment(paid, amount, total) -> Decimal:
    """New cumulative paid amount, capped at total and never lowered."""
    paid = to_decimal(paid)
    new_paid = min(paid + to_decimal(amount), to_decimal(total))
    return round3(max(paid, new_paid))


def invoice_status(paid, total, current: str = "billed") -> str:
    if to_decimal(total) > ZERO and to_decimal(paid) >= to_decimal(total):
        return "paid"
    if current == "paid":
        return "billed"
    return current


def standard_extra_costs() -> List[dict]:
    return [{"label": label, "amount": ZERO} for label in STANDARD_EXTRA_LABELS]


def split_transport_row(extra_costs: List[dict]) -> Tuple[Optional[Decimal], List[dict]]:
    """
    Pull the transport row out of an edited charge list.

    Returns (base_cost or None, remaining extras). The transport row is the
    invoice base cost and is never stored among the extras.
    """
    base_cost = None
    extras = []
    for row in extra_costs:
        if row["label"] == TRANSPORT_LABEL:
            base_cost = row["amount"]
        else:
            extras.append(row)
    return base_cost, extras


def charge_lines(base_cost, extra_costs: List[dict]) -> List[dict]:
    """Transport row followed by the stored extras, as shown to staff."""
    lines = [{"label": TRANSPORT_LABEL, "amount": round3(base_cost)}]
    lines.extend(
        {"label": row.get("label", ""), "amount": round3(row.get("amount"))}
        for row in extra_costs
    )
    return lines


def extras_from_store(raw) -> List[dict]:
    return [
        {"label": row.get("label", ""), "amount": to_decimal(row.get("amount"))}
        for row in (raw or [])
    ]


def extras_to_store(extras: List[dict]) -> List[dict]:
    # JSON has no decimal type; keep the exact thousandths as text
    return [{"label": row["label"], "amount": str(row["amount"])} for row in extras]
