# dairy_billing/services/registry.py
"""
Client registry: who gets milk, how much by default, and at what rate.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from dairy_billing.db.schema import clients
from dairy_billing.models.clients import Client
from dairy_billing.services.errors import (
    BillingValidationError,
    DuplicateClientError,
    InvalidClientError,
)

logger = logging.getLogger(__name__)


def _row_to_client(row) -> Client:
    return Client(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        phone=row["phone"],
        email=row["email"],
        default_daily_quantity=row["default_daily_quantity"],
        rate_per_liter=row["rate_per_liter"],
        is_active=row["is_active"],
        created_at=row["created_at"],
    )


def list_clients(conn, owner_id: str) -> List[Client]:
    stmt = select(clients).where(clients.c.owner_id == owner_id).order_by(clients.c.name)
    return [_row_to_client(row) for row in conn.execute(stmt).mappings()]


def get_active_clients(conn, owner_id: str) -> List[Client]:
    stmt = (
        select(clients)
        .where(and_(clients.c.owner_id == owner_id, clients.c.is_active.is_(True)))
        .order_by(clients.c.id)
    )
    return [_row_to_client(row) for row in conn.execute(stmt).mappings()]


def get_client(conn, owner_id: str, client_id: int) -> Optional[Client]:
    stmt = select(clients).where(
        and_(clients.c.owner_id == owner_id, clients.c.id == client_id)
    )
    row = conn.execute(stmt).mappings().first()
    return _row_to_client(row) if row is not None else None


def get_client_by_name(conn, owner_id: str, name: str) -> Optional[Client]:
    stmt = select(clients).where(
        and_(clients.c.owner_id == owner_id, clients.c.name == name)
    )
    row = conn.execute(stmt).mappings().first()
    return _row_to_client(row) if row is not None else None


def require_active_client(conn, owner_id: str, client_id: int) -> Client:
    client = get_client(conn, owner_id, client_id)
    if client is None:
        raise InvalidClientError(client_id)
    if not client.is_active:
        raise InvalidClientError(client_id, "is inactive")
    return client


def create_client(
    conn,
    owner_id: str,
    name: str,
    default_daily_quantity: Decimal,
    rate_per_liter: Decimal,
    phone: Optional[str] = None,
    email: Optional[str] = None,
    is_active: bool = True,
) -> Client:
    if default_daily_quantity <= 0 or rate_per_liter <= 0:
        raise BillingValidationError("Default quantity and rate must be positive")

    # The (owner_id, name) constraint decides duplicates.
    stmt = (
        sqlite_insert(clients)
        .values(
            owner_id=owner_id,
            name=name,
            phone=phone,
            email=email,
            default_daily_quantity=default_daily_quantity,
            rate_per_liter=rate_per_liter,
            is_active=is_active,
        )
        .on_conflict_do_nothing(index_elements=[clients.c.owner_id, clients.c.name])
    )
    if conn.execute(stmt).rowcount == 0:
        raise DuplicateClientError(name)

    logger.debug("Created client %r for owner %s", name, owner_id)
    return get_client_by_name(conn, owner_id, name)


def set_client_active(conn, owner_id: str, client_id: int, is_active: bool) -> Client:
    result = conn.execute(
        clients.update()
        .where(and_(clients.c.owner_id == owner_id, clients.c.id == client_id))
        .values(is_active=is_active)
    )
    if result.rowcount == 0:
        raise InvalidClientError(client_id)
    return get_client(conn, owner_id, client_id)
