# dairy_billing/services/payments.py
"""
Paid/unpaid transitions for bills.

Both transitions are single conditional UPDATEs keyed on the current state,
so two racing requests cannot both win: the loser sees rowcount == 0 and we
re-read the bill to tell "missing" apart from "wrong state".
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import and_, func

from dairy_billing.db.schema import bills
from dairy_billing.models.bills import Bill, PaymentEvent
from dairy_billing.services.billing import get_bill
from dairy_billing.services.errors import AlreadyPaidError, BillingValidationError

logger = logging.getLogger(__name__)


def mark_paid(
    conn,
    owner_id: str,
    bill_id: int,
    paid_date: date,
    external_reference: Optional[str] = None,
) -> None:
    result = conn.execute(
        bills.update()
        .where(
            and_(
                bills.c.owner_id == owner_id,
                bills.c.id == bill_id,
                bills.c.is_paid.is_(False),
            )
        )
        .values(
            is_paid=True,
            paid_date=paid_date,
            payment_reference=external_reference,
            updated_at=func.current_timestamp(),
        )
    )
    if result.rowcount == 1:
        logger.debug("Bill %s marked paid on %s", bill_id, paid_date)
        return

    # Raises BillNotFoundError when the bill is missing.
    get_bill(conn, owner_id, bill_id)
    raise AlreadyPaidError(bill_id)


def mark_unpaid(conn, owner_id: str, bill_id: int) -> bool:
    """
    Operator correction: put a paid bill back to unpaid.

    Returns True when a paid bill was reversed, False when it was already
    unpaid. Raises BillNotFoundError for unknown bills.
    """
    result = conn.execute(
        bills.update()
        .where(
            and_(
                bills.c.owner_id == owner_id,
                bills.c.id == bill_id,
                bills.c.is_paid.is_(True),
            )
        )
        .values(
            is_paid=False,
            paid_date=None,
            payment_reference=None,
            updated_at=func.current_timestamp(),
        )
    )
    if result.rowcount == 1:
        return True

    get_bill(conn, owner_id, bill_id)
    return False


def apply_payment_event(conn, owner_id: str, event: PaymentEvent) -> Bill:
    """Settle a bill from a confirmed gateway payment. Amounts must match exactly."""
    bill = get_bill(conn, owner_id, event.bill_id)
    if bill.is_paid:
        raise AlreadyPaidError(bill.id)
    if event.amount != bill.total_amount:
        # TODO: revisit once partial payments are modelled (ledger entry vs reduced balance).
        raise BillingValidationError(
            f"Payment amount {event.amount} does not match bill total {bill.total_amount}"
        )

    mark_paid(
        conn,
        owner_id,
        bill.id,
        event.confirmed_at.date(),
        event.external_reference,
    )
    return get_bill(conn, owner_id, bill.id)
