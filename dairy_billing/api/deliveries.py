# dairy_billing/api/deliveries.py

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from dairy_billing.api.deps import get_owner_id, http_error
from dairy_billing.db.engine import get_engine
from dairy_billing.models.deliveries import DeliveryIn, DeliveryRecord
from dairy_billing.services.errors import BillingError
from dairy_billing.services.ledger import (
    get_deliveries_for_client_in_month,
    has_bill_for_period,
    record_delivery,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.put("/", response_model=DeliveryRecord)
def put_delivery(body: DeliveryIn, owner_id: str = Depends(get_owner_id)) -> DeliveryRecord:
    """
    Record the delivery for one client and day, replacing any earlier record for that day.
    """
    engine = get_engine()
    try:
        with engine.begin() as conn:
            record = record_delivery(
                conn,
                owner_id,
                body.client_id,
                body.delivery_date,
                body.quantity,
                delivered=body.delivered,
                notes=body.notes,
            )
            billed = has_bill_for_period(
                conn, body.client_id, body.delivery_date.month, body.delivery_date.year
            )
    except BillingError as exc:
        raise http_error(exc)

    if billed:
        logger.warning(
            "Delivery for client %s on %s changed after the period was billed",
            body.client_id,
            body.delivery_date,
        )
    return record


@router.get("/", response_model=List[DeliveryRecord])
def list_deliveries(
    client_id: int = Query(...),
    month: int = Query(...),
    year: int = Query(...),
    owner_id: str = Depends(get_owner_id),
) -> List[DeliveryRecord]:
    engine = get_engine()
    try:
        with engine.connect() as conn:
            return get_deliveries_for_client_in_month(conn, owner_id, client_id, month, year)
    except BillingError as exc:
        raise http_error(exc)
