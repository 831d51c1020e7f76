# app/api/jobs.py

import logging
from typing import List

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentAdmin, DbEngine
from app.db.schema import invoices, jobs
from app.models.jobs import (
    BulkJobsIn,
    BulkJobsOut,
    JobCreate,
    JobDeleteResponse,
    JobOut,
    JobUpdate,
    JobUpdateResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


def row_to_job(row) -> JobOut:
    return JobOut(
        id=row["id"],
        job_number=row["job_number"],
        client_name=row["client_name"],
        truck_details=row["truck_details"],
        driver_name=row["driver_name"],
        route_to=row["route_to"],
        country=row["country"],
        cost=row["cost"] or 0,
        sale=row["sale"] or 0,
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def fetch_job(conn, job_id: int):
    return conn.execute(select(jobs).where(jobs.c.id == job_id)).mappings().first()


_REQUIRED_COLUMNS = ("job_number", "cost", "sale", "status")


def _job_values(body) -> dict:
    values = body.model_dump(exclude_unset=isinstance(body, JobUpdate))
    # An explicit null on a required column means "leave it alone"
    for key in _REQUIRED_COLUMNS:
        if key in values and values[key] is None:
            del values[key]
    if "status" in values:
        values["status"] = values["status"].value
    return values


@router.get("", response_model=List[JobOut])
def list_jobs(engine: DbEngine, admin: CurrentAdmin) -> List[JobOut]:
    """
    Return all jobs, newest first.
    """
    with engine.connect() as conn:
        rows = conn.execute(
            select(jobs).order_by(jobs.c.created_at.desc(), jobs.c.id.desc())
        ).mappings().all()

    return [row_to_job(row) for row in rows]


@router.post("", response_model=JobOut, status_code=status.HTTP_201_CREATED)
def create_job(body: JobCreate, engine: DbEngine, admin: CurrentAdmin) -> JobOut:
    try:
        with engine.begin() as conn:
            result = conn.execute(insert(jobs).values(**_job_values(body)))
            row = fetch_job(conn, result.inserted_primary_key[0])
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"Job {body.job_number!r} already exists")

    logger.info("Job %s created by %s", row["job_number"], admin.username)
    return row_to_job(row)


@router.post("/bulk", response_model=BulkJobsOut, status_code=status.HTTP_201_CREATED)
def bulk_create_jobs(body: BulkJobsIn, engine: DbEngine, admin: CurrentAdmin) -> BulkJobsOut:
    """
    Create many jobs at once.

    Rows whose job number already exists, or repeats earlier in the batch,
    are skipped and reported rather than failing the whole import.
    """
    if not body.jobs:
        raise HTTPException(status_code=400, detail="No jobs provided for bulk import")

    numbers = [row.job_number for row in body.jobs]

    try:
        with engine.begin() as conn:
            existing = set(
                conn.execute(
                    select(jobs.c.job_number).where(jobs.c.job_number.in_(numbers))
                ).scalars()
            )

            seen: set[str] = set()
            skipped: List[str] = []
            prepared = []
            for row in body.jobs:
                if row.job_number in existing or row.job_number in seen:
                    skipped.append(row.job_number)
                    continue
                seen.add(row.job_number)
                prepared.append(_job_values(row))

            if prepared:
                conn.execute(insert(jobs), prepared)

            created = conn.execute(
                select(jobs)
                .where(jobs.c.job_number.in_([p["job_number"] for p in prepared]))
                .order_by(jobs.c.id)
            ).mappings().all()
    except IntegrityError:
        # Another request inserted one of these numbers between check and insert
        raise HTTPException(status_code=409, detail="Duplicate job number in bulk import")

    logger.info(
        "Bulk import by %s: %s created, %s skipped",
        admin.username, len(created), len(skipped),
    )
    for number in skipped:
        logger.warning("Skipped duplicate job number %r", number)

    return BulkJobsOut(
        message="Bulk jobs imported",
        count=len(created),
        skipped=skipped,
        jobs=[row_to_job(row) for row in created],
    )


@router.get("/{job_id}", response_model=JobOut)
def get_job(job_id: int, engine: DbEngine, admin: CurrentAdmin) -> JobOut:
    with engine.connect() as conn:
        row = fetch_job(conn, job_id)

    if row is None:
        raise HTTPException(status_code=404, detail="Job not found")

    return row_to_job(row)


@router.put("/{job_id}", response_model=JobUpdateResponse)
def update_job(job_id: int, body: JobUpdate, engine: DbEngine, admin: CurrentAdmin) -> JobUpdateResponse:
    """
    Update the fields present in the body. Status may be set to any phase.
    """
    values = _job_values(body)

    try:
        with engine.begin() as conn:
            if values:
                conn.execute(update(jobs).where(jobs.c.id == job_id).values(**values))
            row = fetch_job(conn, job_id)
    except IntegrityError:
        raise HTTPException(status_code=409, detail=f"Job {body.job_number!r} already exists")

    if row is None:
        raise HTTPException(status_code=404, detail="Job not found")

    if "status" in values:
        logger.info("Job %s status set to %s by %s", row["job_number"], values["status"], admin.username)

    return JobUpdateResponse(job=row_to_job(row))


@router.delete("/{job_id}", response_model=JobDeleteResponse)
def delete_job(job_id: int, engine: DbEngine, admin: CurrentAdmin) -> JobDeleteResponse:
    """
    Delete a job and every invoice raised against it.
    """
    with engine.begin() as conn:
        row = fetch_job(conn, job_id)
        if row is None:
            raise HTTPException(status_code=404, detail="Job not found")

        removed = conn.execute(delete(invoices).where(invoices.c.job_id == job_id)).rowcount
        conn.execute(delete(jobs).where(jobs.c.id == job_id))

    logger.info("Job %s deleted by %s with %s invoice(s)", row["job_number"], admin.username, removed)

    return JobDeleteResponse(
        message="Job deleted (and related invoices removed)",
        invoices_deleted=removed,
    )
