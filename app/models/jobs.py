# app/models/jobs.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.types import Money
from app.services.shipment_status import DEFAULT_STATUS, ShipmentStatus


def _strip_job_number(value):
    if isinstance(value, str):
        value = value.strip()
    if not value:
        raise ValueError("job_number is required")
    return value


class JobCreate(BaseModel):
    job_number: str
    client_name: Optional[str] = None
    truck_details: Optional[str] = None
    driver_name: Optional[str] = None
    route_to: Optional[str] = None
    country: Optional[str] = None
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    sale: Decimal = Field(default=Decimal("0"), ge=0)
    status: ShipmentStatus = DEFAULT_STATUS

    check_job_number = field_validator("job_number", mode="before")(_strip_job_number)


class BulkJobRow(JobCreate):
    country: Optional[str] = "Bahrain"

    @field_validator("cost", "sale", mode="before")
    @classmethod
    def blank_amount_is_zero(cls, value):
        # Spreadsheet exports leave empty cells for unknown amounts.
        if value is None or (isinstance(value, str) and not value.strip()):
            return Decimal("0")
        return value

    @field_validator("country", mode="before")
    @classmethod
    def blank_country_is_default(cls, value):
        return value or "Bahrain"


class JobUpdate(BaseModel):
    """Partial update; only fields present in the request body are written."""

    job_number: Optional[str] = None
    client_name: Optional[str] = None
    truck_details: Optional[str] = None
    driver_name: Optional[str] = None
    route_to: Optional[str] = None
    country: Optional[str] = None
    cost: Optional[Decimal] = Field(default=None, ge=0)
    sale: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[ShipmentStatus] = None

    @field_validator("job_number", mode="before")
    @classmethod
    def check_job_number(cls, value):
        if value is None:
            return value
        return _strip_job_number(value)


class JobOut(BaseModel):
    id: int
    job_number: str
    client_name: Optional[str] = None
    truck_details: Optional[str] = None
    driver_name: Optional[str] = None
    route_to: Optional[str] = None
    country: Optional[str] = None
    cost: Money
    sale: Money
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class JobUpdateResponse(BaseModel):
    success: bool = True
    job: JobOut


class JobDeleteResponse(BaseModel):
    success: bool = True
    message: str
    invoices_deleted: int


class BulkJobsIn(BaseModel):
    jobs: List[BulkJobRow]


class BulkJobsOut(BaseModel):
    success: bool = True
    message: str
    count: int
    skipped: List[str]
    jobs: List[JobOut]
