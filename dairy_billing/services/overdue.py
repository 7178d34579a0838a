# dairy_billing/services/overdue.py

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import and_, func, select

from dairy_billing import config
from dairy_billing.db.schema import bills, clients
from dairy_billing.models.bills import OverdueEntry, PaymentStats, PendingClient
from dairy_billing.services.billing import get_bills_for_period, row_to_bill


def aging_bucket(days_overdue: int) -> str:
    if days_overdue <= config.AGING_MEDIUM_MAX_DAYS:
        return "medium"
    if days_overdue <= config.AGING_HIGH_MAX_DAYS:
        return "high"
    return "critical"


def list_overdue(
    conn, owner_id: str, as_of: date, client_id: Optional[int] = None
) -> List[OverdueEntry]:
    """
    Unpaid bills whose due date is strictly before ``as_of``, most overdue first.
    """
    conditions = [
        bills.c.owner_id == owner_id,
        bills.c.is_paid.is_(False),
        bills.c.due_date < as_of,
    ]
    if client_id is not None:
        conditions.append(bills.c.client_id == client_id)

    stmt = (
        select(bills)
        .where(and_(*conditions))
        .order_by(bills.c.due_date.asc(), bills.c.id.asc())
    )

    entries: List[OverdueEntry] = []
    for row in conn.execute(stmt).mappings():
        days_overdue = (as_of - row["due_date"]).days
        entries.append(
            OverdueEntry(
                bill=row_to_bill(row),
                days_overdue=days_overdue,
                bucket=aging_bucket(days_overdue),
            )
        )
    return entries


def list_upcoming_due(
    conn, owner_id: str, as_of: date, within_days: int = config.UPCOMING_WINDOW_DAYS
):
    stmt = (
        select(bills)
        .where(
            and_(
                bills.c.owner_id == owner_id,
                bills.c.is_paid.is_(False),
                bills.c.due_date >= as_of,
                bills.c.due_date <= as_of + timedelta(days=within_days),
            )
        )
        .order_by(bills.c.due_date.asc(), bills.c.id.asc())
    )
    return [row_to_bill(row) for row in conn.execute(stmt).mappings()]


def get_payment_stats(conn, owner_id: str, month: int, year: int, as_of: date) -> PaymentStats:
    period_bills = get_bills_for_period(conn, owner_id, month, year)

    zero = Decimal("0")
    paid = [b for b in period_bills if b.is_paid]
    total_revenue = sum((b.total_amount for b in period_bills), zero)
    collected = sum((b.total_amount for b in paid), zero)
    overdue = [b for b in period_bills if not b.is_paid and b.due_date < as_of]

    if total_revenue > zero:
        rate = (collected / total_revenue * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    else:
        rate = zero

    return PaymentStats(
        month=month,
        year=year,
        total_bills=len(period_bills),
        paid_bills=len(paid),
        unpaid_bills=len(period_bills) - len(paid),
        overdue_bills=len(overdue),
        total_revenue=total_revenue,
        collected_revenue=collected,
        pending_revenue=total_revenue - collected,
        collection_rate=rate,
    )


def get_clients_with_pending_payments(conn, owner_id: str) -> List[PendingClient]:
    pending_amount = func.sum(bills.c.total_amount).label("pending_amount")
    stmt = (
        select(
            clients.c.id.label("client_id"),
            clients.c.name.label("client_name"),
            pending_amount,
            func.count(bills.c.id).label("bills_count"),
        )
        .select_from(bills.join(clients))
        .where(and_(bills.c.owner_id == owner_id, bills.c.is_paid.is_(False)))
        .group_by(clients.c.id, clients.c.name)
        .order_by(pending_amount.desc(), clients.c.id)
    )

    return [
        PendingClient(
            client_id=row["client_id"],
            client_name=row["client_name"],
            pending_amount=row["pending_amount"],
            bills_count=row["bills_count"],
        )
        for row in conn.execute(stmt).mappings()
    ]


def get_payment_trends(
    conn, owner_id: str, as_of: date, months_back: int = 6
) -> List[PaymentStats]:
    """
    Collection stats for the ``months_back`` periods ending with the month of
    ``as_of``, oldest period first.
    """
    periods = []
    month, year = as_of.month, as_of.year
    for _ in range(months_back):
        periods.append((month, year))
        month, year = (12, year - 1) if month == 1 else (month - 1, year)

    return [
        get_payment_stats(conn, owner_id, m, y, as_of)
        for m, y in reversed(periods)
    ]
