# app/models/tracking.py

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.types import Money


class TrackingOut(BaseModel):
    id: str
    found: Literal[True] = True
    customer: str
    status: str
    route: str
    truck: str
    driver: str
    cost: Money
    sale: Money
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    # Not part of the legacy payload; drives the progress timeline.
    step: int
    total_steps: int

    class Config:
        populate_by_name = True


class TrackingMissOut(BaseModel):
    id: str
    found: Literal[False] = False
    message: str = "No shipment found"
