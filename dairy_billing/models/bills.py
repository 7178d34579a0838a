# dairy_billing/models/bills.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

QuantitySource = Literal["tracked", "projected", "manual"]
AgingBucket = Literal["medium", "high", "critical"]


class Bill(BaseModel):
    id: int
    owner_id: str
    client_id: int
    month: int
    year: int
    total_quantity: Decimal
    rate_per_liter: Decimal
    total_amount: Decimal
    quantity_source: QuantitySource
    is_paid: bool
    due_date: date
    paid_date: Optional[date] = None
    payment_reference: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BillCreateIn(BaseModel):
    client_id: int
    month: int
    year: int
    quantity_override: Optional[Decimal] = None
    rate_override: Optional[Decimal] = None


class GenerateBillsIn(BaseModel):
    month: int
    year: int


class GenerationFailure(BaseModel):
    client_id: int
    error: str
    detail: str


class GenerationResult(BaseModel):
    month: int
    year: int
    generated_count: int = 0
    skipped_client_ids: List[int] = Field(default_factory=list)
    failures: List[GenerationFailure] = Field(default_factory=list)


class MarkPaidIn(BaseModel):
    paid_date: date
    external_reference: Optional[str] = None


class PaymentEvent(BaseModel):
    """Confirmation handed over by the payment gateway once money has settled."""

    bill_id: int
    external_reference: str = Field(..., min_length=1)
    amount: Decimal
    confirmed_at: datetime


class OverdueEntry(BaseModel):
    bill: Bill
    days_overdue: int
    bucket: AgingBucket


class OverdueResponse(BaseModel):
    as_of: date
    items: List[OverdueEntry]
    total: int
    limit: int
    offset: int


class PaymentStats(BaseModel):
    month: int
    year: int
    total_bills: int
    paid_bills: int
    unpaid_bills: int
    overdue_bills: int
    total_revenue: Decimal
    collected_revenue: Decimal
    pending_revenue: Decimal
    collection_rate: Decimal


class PendingClient(BaseModel):
    client_id: int
    client_name: str
    pending_amount: Decimal
    bills_count: int
