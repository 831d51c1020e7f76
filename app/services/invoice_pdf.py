# app/services/invoice_pdf.py
"""
Single-page A4 tax invoice, drawn with reportlab's canvas.

Layout coordinates below are measured from the top of the page; _top()
flips them into reportlab's bottom-up space.
"""

import io
import logging
from decimal import Decimal
from typing import List, Optional

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app.config import settings
from app.services.billing import (
    TRANSPORT_LABEL,
    BillingTotals,
    compute_totals,
    derive_tax_defaults,
    to_decimal,
)

logger = logging.getLogger(__name__)

# ─── PALETTE ───
BRAND_PURPLE = HexColor("#6d28d9")
BRAND_ORANGE = HexColor("#fb923c")
INK = HexColor("#0f172a")
BODY = HexColor("#111827")
MUTED = HexColor("#6b7280")
LABEL = HexColor("#4b5563")
HEADER_FILL = HexColor("#f3f4f6")
RULE = HexColor("#e5e7eb")
FOOTER = HexColor("#9ca3af")

W, H = A4  # 595.27 x 841.89
MARGIN = 40
TABLE_W = 515
RIGHT_X = 380

# name, width, alignment
COLUMNS = [
    ("#", 25, "left"),
    ("Name", 200, "left"),
    ("Quantity", 60, "center"),
    ("Unit price", 70, "right"),
    ("Discount", 60, "right"),
    ("VAT%", 50, "right"),
    ("Total", 50, "right"),
]

SMALL = [
    "zero", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine",
    "ten", "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen",
    "seventeen", "eighteen", "nineteen",
]
TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]

# currency -> (minor unit name, minor units per major unit)
MINOR_UNITS = {
    "BHD": ("fils", 1000),
    "INR": ("paise", 100),
}


def format_amount(value, decimals: int = 3) -> str:
    return f"{to_decimal(value):.{decimals}f}"


def format_with_currency(value, currency: str) -> str:
    return f"{format_amount(value)} {currency}"


def number_to_words(n: int) -> str:
    if n < 20:
        return SMALL[n]
    if n < 100:
        return TENS[n // 10] + (" " + SMALL[n % 10] if n % 10 else "")
    if n < 1000:
        return SMALL[n // 100] + " hundred" + (" " + number_to_words(n % 100) if n % 100 else "")
    for scale, name in ((10 ** 9, "billion"), (10 ** 6, "million"), (1000, "thousand")):
        if n >= scale:
            rest = n % scale
            return number_to_words(n // scale) + " " + name + (" " + number_to_words(rest) if rest else "")
    return str(n)


def amount_to_words(amount, currency: str = "BHD") -> str:
    """
    >>> amount_to_words(Decimal("126.5"))
    'One hundred twenty six BHD five hundred fils'
    """
    minor_name, per_major = MINOR_UNITS.get(currency, ("cents", 100))
    amount = max(Decimal("0"), to_decimal(amount))

    whole = int(amount)
    minor = int(((amount - whole) * per_major).to_integral_value())
    if minor == per_major:
        whole, minor = whole + 1, 0

    words = number_to_words(whole)
    return f"{words[0].upper()}{words[1:]} {currency} {number_to_words(minor)} {minor_name}"


def resolve_bank_details(country: Optional[str]) -> dict:
    if "india" in (country or "").lower():
        return {
            "Bank name": settings.INDIA_BANK_NAME,
            "Account Number": settings.INDIA_ACCOUNT_NUMBER,
            "IFSC": settings.INDIA_IFSC,
            "Branch": settings.INDIA_BRANCH,
        }
    return {
        "Bank name": settings.BAHRAIN_BANK_NAME,
        "Account Number": settings.BAHRAIN_ACCOUNT_NUMBER,
        "IBAN": settings.BAHRAIN_IBAN,
        "Swift Code": settings.BAHRAIN_SWIFT,
    }


def invoice_line_items(invoice: dict) -> List[dict]:
    """Transport (when charged) plus every labelled extra, one unit each."""
    items = []
    base = to_decimal(invoice.get("base_cost"))
    if base > 0:
        items.append({"name": "Transport", "amount": base})

    for row in invoice.get("extra_costs") or []:
        label = (row.get("label") or "").strip()
        if label and label != TRANSPORT_LABEL:
            items.append({"name": label, "amount": to_decimal(row.get("amount"))})
    return items


class InvoicePdf:
    def __init__(self, invoice: dict, job: Optional[dict] = None):
        self.invoice = invoice
        self.job = job or {}
        self.buffer = io.BytesIO()
        self.c = canvas.Canvas(self.buffer, pagesize=A4)
        self.c.setTitle(f"Invoice {invoice.get('invoice_number', '')}")
        self.c.setAuthor("Well Reach Logistics")

        self.country = invoice.get("country") or self.job.get("country") or ""
        self.currency = invoice.get("currency") or derive_tax_defaults(self.country)[1]

    # ─── DRAWING PRIMITIVES ───

    @staticmethod
    def _top(y: float) -> float:
        return H - y

    def text(self, value, x, y, font="Helvetica", size=9, color=BODY, align="left", width=None):
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        value = str(value)
        if align == "right" and width is not None:
            self.c.drawRightString(x + width, self._top(y), value)
        elif align == "center" and width is not None:
            self.c.drawCentredString(x + width / 2, self._top(y), value)
        else:
            self.c.drawString(x, self._top(y), value)

    def rule(self, y, color=RULE):
        self.c.setStrokeColor(color)
        self.c.setLineWidth(0.5)
        self.c.line(MARGIN, self._top(y), MARGIN + TABLE_W, self._top(y))

    def row(self, values, y, font="Helvetica", color=BODY):
        x = MARGIN
        for value, (_, width, align) in zip(values, COLUMNS):
            if value != "":
                self.text(value, x + 5, y, font=font, color=color, align=align, width=width - 5)
            x += width

    # ─── SECTIONS ───

    def draw_header(self) -> float:
        inv = self.invoice
        self.text("WELL REACH", 120, 50, font="Helvetica-Bold", size=22, color=BRAND_PURPLE)
        self.text("LOGISTICS", 120, 72, font="Helvetica-Bold", size=22, color=BRAND_ORANGE)

        self.text("TAX INVOICE", RIGHT_X, 44, font="Helvetica-Bold", size=12, color=INK)
        self.text(f"Invoice Number: {inv.get('invoice_number', '')}", RIGHT_X, 60, color=MUTED)
        created = inv.get("created_at")
        self.text(f"Invoice Date: {created.strftime('%d/%m/%Y') if created else ''}", RIGHT_X, 74, color=MUTED)
        if inv.get("client_mobile"):
            self.text(f"Customer Mobile: {inv['client_mobile']}", RIGHT_X, 88, color=MUTED)
        if self.job.get("job_number"):
            self.text(f"Tracking No: {self.job['job_number']}", RIGHT_X, 102, color=MUTED)

        y = 130
        client = inv.get("client_name") or self.job.get("client_name")
        if client:
            self.text(client, MARGIN, y, size=10, color=INK)
            y += 18
        if inv.get("client_gst"):
            self.text(f"GST: {inv['client_gst']}", MARGIN, y, color=MUTED)
            y += 14
        return y

    def draw_items(self, y: float, totals: BillingTotals) -> float:
        inv = self.invoice
        self.c.setFillColor(HEADER_FILL)
        self.c.rect(MARGIN, self._top(y + 20), TABLE_W, 20, fill=1, stroke=0)
        self.row([name for name, _, _ in COLUMNS], y + 14, font="Helvetica-Bold", color=LABEL)
        y += 20
        self.rule(y)

        for idx, item in enumerate(invoice_line_items(inv), start=1):
            amount = format_amount(item["amount"])
            self.row([idx, item["name"][:45], 1, amount, format_amount(0), format_amount(0), amount], y + 13)
            y += 18
            self.rule(y, HEADER_FILL)

        discount = to_decimal(inv.get("discount"))
        if discount > 0:
            self.row(["", "Discount", "", "", format_amount(discount), "", format_amount(-discount)], y + 13)
            y += 18
            self.rule(y, HEADER_FILL)

        tax_percent = to_decimal(inv.get("tax_percent"))
        if tax_percent > 0:
            pct = f"{tax_percent.normalize():f}"
            self.row(["", f"Tax ({pct}%)", "", "", "", pct, format_amount(totals.tax_amount)], y + 13)
            y += 18
            self.rule(y, HEADER_FILL)

        return y

    def draw_totals(self, y: float, totals: BillingTotals) -> float:
        y += 20
        self.text("Amount In Words: " + amount_to_words(totals.total, self.currency), MARGIN, y)

        y += 20
        rows = [
            ("Subtotal", totals.subtotal),
            ("Total", totals.total),
            ("Paid", totals.paid_amount),
            ("Balance due", totals.balance),
        ]
        for label, amount in rows:
            self.text(label, RIGHT_X - 40, y, color=LABEL, align="right", width=120)
            self.text(format_with_currency(amount, self.currency), RIGHT_X + 85, y, align="right", width=90)
            y += 14

        self.text("Total Due", RIGHT_X - 40, y + 2, size=10, color=INK, align="right", width=120)
        self.text(
            format_with_currency(totals.balance, self.currency),
            RIGHT_X + 85, y + 2, font="Helvetica-Bold", size=10, color=INK, align="right", width=90,
        )
        return y + 20

    def draw_bank_details(self, y: float) -> float:
        y += 30
        self.text("Please make the payment to our bank account at:", MARGIN, y)
        for label, value in resolve_bank_details(self.country).items():
            if value:
                y += 14
                self.text(f"{label}: {value}", MARGIN, y)
        return y

    def draw_notes(self, y: float) -> float:
        for title in ("notes", "terms"):
            value = (self.invoice.get(title) or "").strip()
            if value:
                y += 24
                self.text(title.capitalize(), MARGIN, y, font="Helvetica-Bold")
                for line in value.splitlines()[:6]:
                    y += 12
                    self.text(line[:110], MARGIN, y, color=MUTED)
        return y

    def render(self) -> bytes:
        inv = self.invoice
        totals = compute_totals(
            inv.get("base_cost"),
            [row.get("amount") for row in inv.get("extra_costs") or []],
            inv.get("discount"),
            inv.get("tax_percent"),
            inv.get("paid_amount"),
        )

        y = self.draw_header()
        y = self.draw_items(y, totals)
        y = self.draw_totals(y, totals)
        y = self.draw_bank_details(y)
        self.draw_notes(y)

        self.text("Page 1 of 1", MARGIN, 800, size=8, color=FOOTER, align="right", width=TABLE_W)
        self.c.showPage()
        self.c.save()

        logger.debug("Rendered PDF for invoice %s", inv.get("invoice_number"))
        return self.buffer.getvalue()


def render_invoice_pdf(invoice: dict, job: Optional[dict] = None) -> bytes:
    return InvoicePdf(invoice, job).render()
