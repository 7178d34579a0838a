# dairy_billing/models/deliveries.py

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class DeliveryRecord(BaseModel):
    id: int
    owner_id: str
    client_id: int
    delivery_date: date
    quantity: Decimal
    delivered: bool
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None


class DeliveryIn(BaseModel):
    client_id: int
    delivery_date: date
    quantity: Decimal
    delivered: bool = True
    notes: Optional[str] = None
