# dairy_billing/models/clients.py

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Client(BaseModel):
    id: int
    owner_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    default_daily_quantity: Decimal
    rate_per_liter: Decimal
    is_active: bool = True
    created_at: Optional[datetime] = None


class ClientIn(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    default_daily_quantity: Decimal = Field(..., gt=0)
    rate_per_liter: Decimal = Field(..., gt=0)
    is_active: bool = True


class ClientStatusIn(BaseModel):
    is_active: bool
