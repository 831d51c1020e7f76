# app/models/invoices.py

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.jobs import JobOut
from app.models.types import Money


class ChargeLine(BaseModel):
    label: str
    amount: Money


class ChargeIn(BaseModel):
    # Checked by app.services.billing so bad rows come back as 400, not 422
    label: Any = ""
    amount: Any = 0


class InvoiceCreate(BaseModel):
    client_gst: str = ""
    client_mobile: str = ""
    notes: str = ""
    terms: str = ""
    tax_percent: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    draft: bool = False


class ChargesUpdate(BaseModel):
    extra_costs: List[ChargeIn]
    discount: Any = 0
    tax_percent: Any = None
    base_cost: Any = None
    country: Optional[str] = None


class PaymentIn(BaseModel):
    amount: Any = None


class TotalsOut(BaseModel):
    subtotal: Money
    taxable: Money
    tax_amount: Money
    total: Money
    paid_amount: Money
    balance: Money


class InvoiceSummary(BaseModel):
    id: int
    invoice_number: str
    job_number: Optional[str] = None
    client_name: str
    status: str
    currency: str
    total: Money
    paid_amount: Money
    balance: Money
    tax_percent: Money
    country: str
    created_at: datetime


class InvoiceFull(BaseModel):
    id: int
    invoice_number: str
    job_id: int
    job: Optional[JobOut] = None
    client_name: str
    client_address: str
    client_gst: str
    client_mobile: str
    country: str
    base_cost: Money
    extra_costs: List[ChargeLine]
    charge_lines: List[ChargeLine]
    discount: Money
    tax_percent: Money
    currency: str
    final_cost: Money
    final_sale: Money
    paid_amount: Money
    status: Literal["draft", "billed", "paid"]
    notes: str
    terms: str
    totals: TotalsOut
    created_at: datetime
    updated_at: datetime


class DeleteResponse(BaseModel):
    success: bool = True
