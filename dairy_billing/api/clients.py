# dairy_billing/api/clients.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from dairy_billing.api.deps import get_owner_id, http_error
from dairy_billing.db.engine import get_engine
from dairy_billing.models.bills import Bill
from dairy_billing.models.clients import Client, ClientIn, ClientStatusIn
from dairy_billing.services.billing import get_bills_for_client
from dairy_billing.services.errors import BillingError
from dairy_billing.services.registry import (
    create_client,
    get_client,
    list_clients,
    set_client_active,
)

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("/", response_model=List[Client])
def list_all_clients(owner_id: str = Depends(get_owner_id)) -> List[Client]:
    """
    Return all clients of the owner, active or not, ordered by name.
    """
    engine = get_engine()
    with engine.connect() as conn:
        return list_clients(conn, owner_id)


@router.post("/", response_model=Client, status_code=201)
def add_client(body: ClientIn, owner_id: str = Depends(get_owner_id)) -> Client:
    engine = get_engine()
    try:
        with engine.begin() as conn:
            return create_client(
                conn,
                owner_id,
                name=body.name,
                default_daily_quantity=body.default_daily_quantity,
                rate_per_liter=body.rate_per_liter,
                phone=body.phone,
                email=body.email,
                is_active=body.is_active,
            )
    except BillingError as exc:
        raise http_error(exc)


@router.get("/{client_id}", response_model=Client)
def get_one_client(client_id: int, owner_id: str = Depends(get_owner_id)) -> Client:
    engine = get_engine()
    with engine.connect() as conn:
        client = get_client(conn, owner_id, client_id)

    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.patch("/{client_id}/status", response_model=Client)
def update_client_status(
    client_id: int, body: ClientStatusIn, owner_id: str = Depends(get_owner_id)
) -> Client:
    engine = get_engine()
    try:
        with engine.begin() as conn:
            return set_client_active(conn, owner_id, client_id, body.is_active)
    except BillingError as exc:
        raise http_error(exc)


@router.get("/{client_id}/bills", response_model=List[Bill])
def list_client_bills(client_id: int, owner_id: str = Depends(get_owner_id)) -> List[Bill]:
    """
    Every bill of one client, newest period first.
    """
    engine = get_engine()
    with engine.connect() as conn:
        return get_bills_for_client(conn, owner_id, client_id)
