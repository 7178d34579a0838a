# dairy_billing/api/bills.py

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from dairy_billing import config
from dairy_billing.api.deps import get_owner_id, http_error, today
from dairy_billing.db.engine import get_engine
from dairy_billing.models.bills import (
    Bill,
    BillCreateIn,
    GenerateBillsIn,
    GenerationResult,
    MarkPaidIn,
    OverdueResponse,
    PaymentEvent,
    PaymentStats,
    PendingClient,
)
from dairy_billing.services.billing import (
    create_bill,
    generate_monthly_bills,
    get_bill,
    get_bills_for_period,
)
from dairy_billing.services.errors import BillingError
from dairy_billing.services.overdue import (
    get_clients_with_pending_payments,
    get_payment_stats,
    get_payment_trends,
    list_overdue,
    list_upcoming_due,
)
from dairy_billing.services.payments import apply_payment_event, mark_paid, mark_unpaid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bills", tags=["bills"])


@router.post("/generate", response_model=GenerationResult)
def generate_bills(body: GenerateBillsIn, owner_id: str = Depends(get_owner_id)) -> GenerationResult:
    """
    Generate the month's bills for every active client. Safe to call repeatedly.
    """
    engine = get_engine()
    try:
        with engine.begin() as conn:
            result = generate_monthly_bills(conn, owner_id, body.month, body.year)
    except BillingError as exc:
        raise http_error(exc)

    logger.info(
        "Bill generation %d-%02d for %s: %d created, %d already generated, %d failed",
        body.year,
        body.month,
        owner_id,
        result.generated_count,
        len(result.skipped_client_ids),
        len(result.failures),
    )
    for failure in result.failures:
        logger.warning(
            "Bill generation failed for client %s: %s", failure.client_id, failure.detail
        )
    return result


@router.post("/", response_model=Bill, status_code=201)
def create_manual_bill(body: BillCreateIn, owner_id: str = Depends(get_owner_id)) -> Bill:
    engine = get_engine()
    try:
        with engine.begin() as conn:
            return create_bill(
                conn,
                owner_id,
                body.client_id,
                body.month,
                body.year,
                quantity_override=body.quantity_override,
                rate_override=body.rate_override,
            )
    except BillingError as exc:
        raise http_error(exc)


@router.get("/", response_model=List[Bill])
def list_period_bills(
    month: int = Query(..., description="Billing month, 1-12"),
    year: int = Query(...),
    owner_id: str = Depends(get_owner_id),
) -> List[Bill]:
    engine = get_engine()
    try:
        with engine.connect() as conn:
            return get_bills_for_period(conn, owner_id, month, year)
    except BillingError as exc:
        raise http_error(exc)


@router.get("/overdue", response_model=OverdueResponse)
def list_overdue_bills(
    as_of: Optional[date] = Query(
        default=None,
        description="ISO date (YYYY-MM-DD); defaults to today in the business timezone",
    ),
    client_id: Optional[int] = Query(default=None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    owner_id: str = Depends(get_owner_id),
) -> OverdueResponse:
    """
    Unpaid bills past their due date, most overdue first, with aging buckets.
    """
    if as_of is None:
        as_of = today()

    engine = get_engine()
    with engine.connect() as conn:
        entries = list_overdue(conn, owner_id, as_of, client_id=client_id)

    return OverdueResponse(
        as_of=as_of,
        items=entries[offset:offset + limit],
        total=len(entries),
        limit=limit,
        offset=offset,
    )


@router.get("/upcoming", response_model=List[Bill])
def list_upcoming_bills(
    as_of: Optional[date] = Query(default=None),
    within_days: int = Query(config.UPCOMING_WINDOW_DAYS, ge=0, le=90),
    owner_id: str = Depends(get_owner_id),
) -> List[Bill]:
    if as_of is None:
        as_of = today()

    engine = get_engine()
    with engine.connect() as conn:
        return list_upcoming_due(conn, owner_id, as_of, within_days)


@router.get("/summary", response_model=PaymentStats)
def period_summary(
    month: int = Query(...),
    year: int = Query(...),
    as_of: Optional[date] = Query(default=None),
    owner_id: str = Depends(get_owner_id),
) -> PaymentStats:
    """
    Collection figures for one billing period.
    """
    if as_of is None:
        as_of = today()

    engine = get_engine()
    try:
        with engine.connect() as conn:
            return get_payment_stats(conn, owner_id, month, year, as_of)
    except BillingError as exc:
        raise http_error(exc)


@router.get("/trends", response_model=List[PaymentStats])
def payment_trends(
    as_of: Optional[date] = Query(default=None),
    months_back: int = Query(6, ge=1, le=36),
    owner_id: str = Depends(get_owner_id),
) -> List[PaymentStats]:
    """
    Per-month collection figures for the last ``months_back`` periods, oldest first.
    """
    if as_of is None:
        as_of = today()

    engine = get_engine()
    try:
        with engine.connect() as conn:
            return get_payment_trends(conn, owner_id, as_of, months_back)
    except BillingError as exc:
        raise http_error(exc)


@router.get("/pending-clients", response_model=List[PendingClient])
def pending_clients(owner_id: str = Depends(get_owner_id)) -> List[PendingClient]:
    engine = get_engine()
    with engine.connect() as conn:
        return get_clients_with_pending_payments(conn, owner_id)


@router.post("/payment-events", response_model=Bill)
def receive_payment_event(event: PaymentEvent, owner_id: str = Depends(get_owner_id)) -> Bill:
    """
    Gateway callback: settle the bill named in a confirmed payment.
    """
    engine = get_engine()
    try:
        with engine.begin() as conn:
            bill = apply_payment_event(conn, owner_id, event)
    except BillingError as exc:
        logger.warning(
            "Payment event %s for bill %s rejected: %s",
            event.external_reference,
            event.bill_id,
            exc,
        )
        raise http_error(exc)

    logger.info("Bill %s settled by payment %s", bill.id, event.external_reference)
    return bill


@router.get("/{bill_id}", response_model=Bill)
def get_one_bill(bill_id: int, owner_id: str = Depends(get_owner_id)) -> Bill:
    engine = get_engine()
    try:
        with engine.connect() as conn:
            return get_bill(conn, owner_id, bill_id)
    except BillingError as exc:
        raise http_error(exc)


@router.post("/{bill_id}/pay", response_model=Bill)
def pay_bill(bill_id: int, body: MarkPaidIn, owner_id: str = Depends(get_owner_id)) -> Bill:
    engine = get_engine()
    try:
        with engine.begin() as conn:
            mark_paid(conn, owner_id, bill_id, body.paid_date, body.external_reference)
            return get_bill(conn, owner_id, bill_id)
    except BillingError as exc:
        raise http_error(exc)


@router.post("/{bill_id}/unpay", response_model=Bill)
def unpay_bill(bill_id: int, owner_id: str = Depends(get_owner_id)) -> Bill:
    """
    Operator correction: reverse a payment recorded in error.
    """
    engine = get_engine()
    try:
        with engine.begin() as conn:
            reversed_ = mark_unpaid(conn, owner_id, bill_id)
            bill = get_bill(conn, owner_id, bill_id)
    except BillingError as exc:
        raise http_error(exc)

    if reversed_:
        logger.warning("AUDIT: bill %s reverted to unpaid by owner %s", bill_id, owner_id)
    return bill
