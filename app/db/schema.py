# app/db/schema.py

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, JSON,
    Numeric, DateTime, ForeignKey, CheckConstraint, Text, func
)

from app.services.shipment_status import DEFAULT_STATUS

metadata = MetaData()

admins = Table(
    "admins",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String, nullable=False, unique=True),
    Column("password_hash", String, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now(), onupdate=func.now()),
)

jobs = Table(
    "jobs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_number", String, nullable=False, unique=True),
    Column("client_name", String),
    Column("truck_details", String),
    Column("driver_name", String),
    Column("route_to", String),
    Column("country", String),
    Column("cost", Numeric(18, 3), nullable=False, default=0),
    Column("sale", Numeric(18, 3), nullable=False, default=0),
    Column("status", String, nullable=False, default=DEFAULT_STATUS.value),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now(), onupdate=func.now()),
    CheckConstraint("cost >= 0", name="ck_jobs_cost_nonneg"),
    CheckConstraint("sale >= 0", name="ck_jobs_sale_nonneg"),
)

invoices = Table(
    "invoices",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("invoice_number", Text, unique=True, nullable=False),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("client_name", Text, nullable=False, default=""),
    Column("client_address", Text, nullable=False, default=""),
    Column("client_gst", Text, nullable=False, default=""),
    Column("client_mobile", Text, nullable=False, default=""),
    Column("country", Text, nullable=False, default=""),
    Column("base_cost", Numeric(18, 3), nullable=False, default=0),
    # [{"label": str, "amount": "12.500"}, ...]
    Column("extra_costs", JSON, nullable=False, default=list),
    Column("discount", Numeric(18, 3), nullable=False, default=0),
    Column("tax_percent", Numeric(7, 3), nullable=False, default=0),
    Column("currency", Text, nullable=False, default="BHD"),
    Column("final_cost", Numeric(18, 3), nullable=False, default=0),
    Column("final_sale", Numeric(18, 3), nullable=False, default=0),
    Column("paid_amount", Numeric(18, 3), nullable=False, default=0),
    Column("status", Text, nullable=False, default="billed"),
    Column("notes", Text, nullable=False, default=""),
    Column("terms", Text, nullable=False, default=""),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now(), onupdate=func.now()),
    CheckConstraint("paid_amount >= 0", name="ck_invoices_paid_nonneg"),
    CheckConstraint("paid_amount <= final_sale", name="ck_invoices_paid_capped"),
    CheckConstraint("status IN ('draft', 'billed', 'paid')", name="ck_invoices_status"),
)
