# dairy_billing/services/billing.py
"""
Monthly billing: turn a client's deliveries for a period into one Bill.

Quantities come from the delivery ledger when the period has any tracked
records. A period with no records at all is billed on a projected quantity
(days in month x the client's default daily quantity) and the bill says so
in ``quantity_source``.

Uniqueness of (client_id, month, year) is enforced by the bills table; both
generation paths use a conditional insert and look at whether a row landed.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from dairy_billing import config
from dairy_billing.db.schema import bills
from dairy_billing.models.bills import Bill, GenerationFailure, GenerationResult
from dairy_billing.models.clients import Client
from dairy_billing.services.errors import (
    BillingError,
    BillingValidationError,
    BillNotFoundError,
    DuplicateBillError,
)
from dairy_billing.services.ledger import (
    get_days_in_month,
    get_deliveries_for_client_in_month,
    validate_period,
)
from dairy_billing.services.registry import get_active_clients, require_active_client

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
# Scales of bills.total_quantity and bills.rate_per_liter.
QUANTITY_STEP = Decimal("0.001")
RATE_STEP = Decimal("0.01")


def row_to_bill(row) -> Bill:
    return Bill(
        id=row["id"],
        owner_id=row["owner_id"],
        client_id=row["client_id"],
        month=row["month"],
        year=row["year"],
        total_quantity=row["total_quantity"],
        rate_per_liter=row["rate_per_liter"],
        total_amount=row["total_amount"],
        quantity_source=row["quantity_source"],
        is_paid=row["is_paid"],
        due_date=row["due_date"],
        paid_date=row["paid_date"],
        payment_reference=row["payment_reference"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def due_date_for(month: int, year: int) -> date:
    """10th of the month after the billing period (December rolls into January)."""
    validate_period(month, year)
    return date(year + month // 12, month % 12 + 1, config.DUE_DAY_OF_NEXT_MONTH)


def compute_amount(quantity: Decimal, rate: Decimal) -> Decimal:
    return (Decimal(quantity) * Decimal(rate)).quantize(CENTS, rounding=ROUND_HALF_UP)


def quantize_quantity(quantity) -> Decimal:
    return Decimal(quantity).quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def quantize_rate(rate) -> Decimal:
    return Decimal(rate).quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def projected_quantity(client: Client, month: int, year: int) -> Decimal:
    return get_days_in_month(month, year) * client.default_daily_quantity


def _insert_bill_if_absent(
    conn,
    client: Client,
    month: int,
    year: int,
    quantity: Decimal,
    rate: Decimal,
    quantity_source: str,
) -> bool:
    """Returns True when a new row was written, False when the period was already billed."""
    # Round to the stored scales first so the amount matches what is read back.
    quantity = quantize_quantity(quantity)
    rate = quantize_rate(rate)
    stmt = (
        sqlite_insert(bills)
        .values(
            owner_id=client.owner_id,
            client_id=client.id,
            month=month,
            year=year,
            total_quantity=quantity,
            rate_per_liter=rate,
            total_amount=compute_amount(quantity, rate),
            quantity_source=quantity_source,
            is_paid=False,
            due_date=due_date_for(month, year),
            paid_date=None,
            payment_reference=None,
        )
        .on_conflict_do_nothing(
            index_elements=[bills.c.client_id, bills.c.month, bills.c.year]
        )
    )
    return conn.execute(stmt).rowcount == 1


def _bill_for_period(conn, owner_id: str, client_id: int, month: int, year: int) -> Bill:
    stmt = select(bills).where(
        and_(
            bills.c.owner_id == owner_id,
            bills.c.client_id == client_id,
            bills.c.month == month,
            bills.c.year == year,
        )
    )
    return row_to_bill(conn.execute(stmt).mappings().one())


def _period_is_billed(conn, owner_id: str, client_id: int, month: int, year: int) -> bool:
    stmt = select(bills.c.id).where(
        and_(
            bills.c.owner_id == owner_id,
            bills.c.client_id == client_id,
            bills.c.month == month,
            bills.c.year == year,
        )
    )
    return conn.execute(stmt).first() is not None


def _generate_for_client(conn, client: Client, month: int, year: int) -> bool:
    records = get_deliveries_for_client_in_month(conn, client.owner_id, client.id, month, year)

    if records:
        quantity = sum(
            (r.quantity for r in records if r.delivered),
            Decimal("0"),
        )
        source = "tracked"
    else:
        quantity = projected_quantity(client, month, year)
        source = "projected"

    return _insert_bill_if_absent(
        conn, client, month, year, quantity, client.rate_per_liter, source
    )


def generate_monthly_bills(conn, owner_id: str, month: int, year: int) -> GenerationResult:
    """
    Bill every active client of ``owner_id`` for the period.

    Clients already billed for the period are skipped, so running this twice
    creates nothing the second time. A failure for one client is recorded in
    the result and the remaining clients are still processed.
    """
    validate_period(month, year)
    result = GenerationResult(month=month, year=year)

    for client in get_active_clients(conn, owner_id):
        try:
            created = _generate_for_client(conn, client, month, year)
        except (BillingError, IntegrityError) as exc:
            result.failures.append(
                GenerationFailure(
                    client_id=client.id,
                    error=type(exc).__name__,
                    detail=str(exc),
                )
            )
            continue

        if created:
            result.generated_count += 1
        else:
            result.skipped_client_ids.append(client.id)

    logger.debug(
        "Generated %s bills for %s %d-%02d (%d skipped, %d failed)",
        result.generated_count,
        owner_id,
        year,
        month,
        len(result.skipped_client_ids),
        len(result.failures),
    )
    return result


def create_bill(
    conn,
    owner_id: str,
    client_id: int,
    month: int,
    year: int,
    quantity_override: Optional[Decimal] = None,
    rate_override: Optional[Decimal] = None,
) -> Bill:
    """
    Create one bill by hand, optionally overriding quantity and/or rate.

    Without a quantity override the projected quantity is used; deliveries
    are not consulted. Overrides are rounded half-up to 3 (quantity) and 2
    (rate) decimal places and must still be positive after rounding.

    An already billed period raises DuplicateBillError whatever the
    overrides; the unique constraint still decides at insert time.
    """
    validate_period(month, year)
    if _period_is_billed(conn, owner_id, client_id, month, year):
        raise DuplicateBillError(client_id, month, year)

    if quantity_override is not None:
        quantity_override = quantize_quantity(quantity_override)
        if quantity_override <= 0:
            raise BillingValidationError("Quantity override must be positive")
    if rate_override is not None:
        rate_override = quantize_rate(rate_override)
        if rate_override <= 0:
            raise BillingValidationError("Rate override must be positive")

    client = require_active_client(conn, owner_id, client_id)

    if quantity_override is not None:
        quantity = quantity_override
        source = "manual"
    else:
        quantity = projected_quantity(client, month, year)
        source = "projected"
    rate = rate_override if rate_override is not None else client.rate_per_liter

    if not _insert_bill_if_absent(conn, client, month, year, quantity, rate, source):
        raise DuplicateBillError(client_id, month, year)

    return _bill_for_period(conn, owner_id, client_id, month, year)


# ---- Queries ----

def get_bill(conn, owner_id: str, bill_id: int) -> Bill:
    stmt = select(bills).where(and_(bills.c.owner_id == owner_id, bills.c.id == bill_id))
    row = conn.execute(stmt).mappings().first()
    if row is None:
        raise BillNotFoundError(bill_id)
    return row_to_bill(row)


def get_bills_for_period(conn, owner_id: str, month: int, year: int) -> List[Bill]:
    validate_period(month, year)
    stmt = (
        select(bills)
        .where(
            and_(
                bills.c.owner_id == owner_id,
                bills.c.month == month,
                bills.c.year == year,
            )
        )
        .order_by(bills.c.client_id)
    )
    return [row_to_bill(row) for row in conn.execute(stmt).mappings()]


def get_bills_for_client(conn, owner_id: str, client_id: int) -> List[Bill]:
    stmt = (
        select(bills)
        .where(and_(bills.c.owner_id == owner_id, bills.c.client_id == client_id))
        .order_by(bills.c.year.desc(), bills.c.month.desc())
    )
    return [row_to_bill(row) for row in conn.execute(stmt).mappings()]
