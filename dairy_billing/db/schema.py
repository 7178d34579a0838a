# dairy_billing/db/schema.py

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Boolean,
    Numeric, Date, DateTime, ForeignKey, CheckConstraint, Text,
    UniqueConstraint, func,
)

metadata = MetaData()

clients = Table(
    "clients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("phone", String, nullable=True),
    Column("email", String, nullable=True),
    Column("default_daily_quantity", Numeric(10, 3), nullable=False),
    Column("rate_per_liter", Numeric(10, 2), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("owner_id", "name", name="uq_clients_owner_name"),
    CheckConstraint("default_daily_quantity > 0", name="ck_clients_quantity_pos"),
    CheckConstraint("rate_per_liter > 0", name="ck_clients_rate_pos"),
)

deliveries = Table(
    "deliveries",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("owner_id", String, nullable=False, index=True),
    Column("client_id", Integer, ForeignKey("clients.id"), nullable=False),
    Column("delivery_date", Date, nullable=False),
    Column("quantity", Numeric(10, 3), nullable=False),
    Column("delivered", Boolean, nullable=False),
    Column("notes", Text),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    # One record per client per day; writes for the same day replace it.
    UniqueConstraint("client_id", "delivery_date", name="uq_deliveries_client_day"),
    CheckConstraint("quantity >= 0", name="ck_deliveries_quantity_nonneg"),
)

bills = Table(
    "bills",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("owner_id", String, nullable=False, index=True),
    Column("client_id", Integer, ForeignKey("clients.id"), nullable=False),
    Column("month", Integer, nullable=False),
    Column("year", Integer, nullable=False),
    Column("total_quantity", Numeric(12, 3), nullable=False),
    Column("rate_per_liter", Numeric(10, 2), nullable=False),
    Column("total_amount", Numeric(18, 2), nullable=False),
    Column("quantity_source", Text, nullable=False),
    Column("is_paid", Boolean, nullable=False, default=False),
    Column("due_date", Date, nullable=False),
    Column("paid_date", Date),
    Column("payment_reference", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    # Generation relies on this constraint, not on a prior read.
    UniqueConstraint("client_id", "month", "year", name="uq_bills_client_period"),
    CheckConstraint("month BETWEEN 1 AND 12", name="ck_bills_month_range"),
    CheckConstraint("total_quantity >= 0", name="ck_bills_quantity_nonneg"),
    CheckConstraint("total_amount >= 0", name="ck_bills_amount_nonneg"),
    CheckConstraint(
        "quantity_source IN ('tracked', 'projected', 'manual')",
        name="ck_bills_quantity_source",
    ),
    CheckConstraint(
        "(is_paid AND paid_date IS NOT NULL) OR (NOT is_paid AND paid_date IS NULL)",
        name="ck_bills_paid_date_iff_paid",
    ),
)
