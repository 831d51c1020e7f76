# app/api/tracking.py

from typing import Union

from fastapi import APIRouter
from sqlalchemy import select

from app.api.deps import DbEngine
from app.db.schema import jobs
from app.models.tracking import TrackingMissOut, TrackingOut
from app.services.shipment_status import status_progress

router = APIRouter(tags=["tracking"])


@router.get("/track/{tracking_id}", response_model=Union[TrackingOut, TrackingMissOut])
def track_shipment(tracking_id: str, engine: DbEngine) -> Union[TrackingOut, TrackingMissOut]:
    """
    Public shipment lookup by tracking (job) number. No token required.
    """
    with engine.connect() as conn:
        row = conn.execute(
            select(
                jobs.c.job_number,
                jobs.c.client_name,
                jobs.c.status,
                jobs.c.route_to,
                jobs.c.truck_details,
                jobs.c.driver_name,
                jobs.c.cost,
                jobs.c.sale,
                jobs.c.created_at,
            ).where(jobs.c.job_number == tracking_id.strip())
        ).mappings().first()

    if row is None:
        return TrackingMissOut(id=tracking_id)

    step, total_steps = status_progress(row["status"])

    return TrackingOut(
        id=row["job_number"],
        customer=row["client_name"] or "",
        status=row["status"],
        route=row["route_to"] or "",
        truck=row["truck_details"] or "",
        driver=row["driver_name"] or "",
        cost=row["cost"] or 0,
        sale=row["sale"] or 0,
        created_at=row["created_at"],
        step=step,
        total_steps=total_steps,
    )
