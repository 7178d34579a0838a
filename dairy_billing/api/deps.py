# dairy_billing/api/deps.py

from datetime import date, datetime

from fastapi import Header, HTTPException

from dairy_billing import config
from dairy_billing.services.errors import (
    AlreadyPaidError,
    BillingError,
    BillNotFoundError,
    DuplicateBillError,
    DuplicateClientError,
    InvalidClientError,
    InvalidPeriodError,
    BillingValidationError,
)

_STATUS_BY_ERROR = {
    BillNotFoundError: 404,
    DuplicateBillError: 409,
    DuplicateClientError: 409,
    AlreadyPaidError: 409,
    InvalidClientError: 422,
    InvalidPeriodError: 400,
    BillingValidationError: 400,
}


def get_owner_id(x_owner_id: str = Header(..., min_length=1)) -> str:
    """Dairy owner the request acts for, taken from the X-Owner-Id header."""
    return x_owner_id


def http_error(exc: BillingError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_ERROR.get(type(exc), 400),
        detail=str(exc),
    )


def today() -> date:
    return datetime.now(config.TIMEZONE).date()
