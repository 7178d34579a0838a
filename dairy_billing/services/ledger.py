# dairy_billing/services/ledger.py
"""
Delivery ledger: one record per client per calendar day.

The billing engine reads quantities from here; delivery tracking writes them.
"""

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from dairy_billing import config
from dairy_billing.db.schema import bills, deliveries
from dairy_billing.models.deliveries import DeliveryRecord
from dairy_billing.services.errors import (
    BillingValidationError,
    InvalidClientError,
    InvalidPeriodError,
)
from dairy_billing.services.registry import get_client

logger = logging.getLogger(__name__)


# ---- Calendar helpers ----

def _is_plain_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_period(month: int, year: int) -> None:
    if not _is_plain_int(month) or not 1 <= month <= 12:
        raise InvalidPeriodError(month, year)
    if not _is_plain_int(year) or not config.MIN_BILLING_YEAR <= year <= config.MAX_BILLING_YEAR:
        raise InvalidPeriodError(month, year)


def get_days_in_month(month: int, year: int) -> int:
    validate_period(month, year)
    return calendar.monthrange(year, month)[1]


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day of the period."""
    return date(year, month, 1), date(year, month, get_days_in_month(month, year))


# ---- Reads ----

def _row_to_delivery(row) -> DeliveryRecord:
    return DeliveryRecord(
        id=row["id"],
        owner_id=row["owner_id"],
        client_id=row["client_id"],
        delivery_date=row["delivery_date"],
        quantity=row["quantity"],
        delivered=row["delivered"],
        notes=row["notes"],
        updated_at=row["updated_at"],
    )


def get_deliveries_for_client_in_month(
    conn, owner_id: str, client_id: int, month: int, year: int
) -> List[DeliveryRecord]:
    first_day, last_day = month_bounds(month, year)
    stmt = (
        select(deliveries)
        .where(
            and_(
                deliveries.c.owner_id == owner_id,
                deliveries.c.client_id == client_id,
                deliveries.c.delivery_date >= first_day,
                deliveries.c.delivery_date <= last_day,
            )
        )
        .order_by(deliveries.c.delivery_date.asc())
    )
    return [_row_to_delivery(row) for row in conn.execute(stmt).mappings()]


def has_bill_for_period(conn, client_id: int, month: int, year: int) -> bool:
    stmt = select(func.count()).select_from(bills).where(
        and_(
            bills.c.client_id == client_id,
            bills.c.month == month,
            bills.c.year == year,
        )
    )
    return conn.execute(stmt).scalar_one() > 0


# ---- Writes ----

def record_delivery(
    conn,
    owner_id: str,
    client_id: int,
    delivery_date: date,
    quantity: Decimal,
    delivered: bool = True,
    notes: Optional[str] = None,
) -> DeliveryRecord:
    """
    Insert or replace the delivery for (client_id, delivery_date).

    A later write for the same day wins; there is never more than one row.
    """
    if quantity < 0:
        raise BillingValidationError("Delivery quantity cannot be negative")
    if get_client(conn, owner_id, client_id) is None:
        raise InvalidClientError(client_id)

    stmt = sqlite_insert(deliveries).values(
        owner_id=owner_id,
        client_id=client_id,
        delivery_date=delivery_date,
        quantity=quantity,
        delivered=delivered,
        notes=notes,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[deliveries.c.client_id, deliveries.c.delivery_date],
        set_={
            "quantity": stmt.excluded.quantity,
            "delivered": stmt.excluded.delivered,
            "notes": stmt.excluded.notes,
            "updated_at": func.current_timestamp(),
        },
    )
    conn.execute(stmt)

    row = conn.execute(
        select(deliveries).where(
            and_(
                deliveries.c.client_id == client_id,
                deliveries.c.delivery_date == delivery_date,
            )
        )
    ).mappings().one()

    logger.debug("Recorded delivery for client %s on %s", client_id, delivery_date)
    return _row_to_delivery(row)
