"""
# `storefront/schemas/booking.py` — Booking schemas

Field names mirror the `bookings/{docId}` documents written by the mobile booking
flow (camelCase in Firestore, snake_case in Python via aliases).

| Firestore field        | Python attribute      | Notes |
|------------------------|-----------------------|-------|
| shop / barber          | shop / barber         | shop is matched case-insensitively |
| customerName/Phone/Email | customer_*          | free-text search targets |
| service                | service               | legacy list of service ids |
| serviceDetails         | service_details       | ordered `{name, duration, price}` |
| total                  | total                 | refund amount |
| status                 | status                | `Booked` (implicit) / `Cancelled` / `Returned` |
| refundStatus           | refund_status         | unset / `processed` / `queued` / `failed` |
| paymentId, razorpay_payment_id | payment_id, razorpay_payment_id | either one enables a refund |
| createdAt / updatedAt  | created_at / updated_at | Firestore timestamps |
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    booked = "Booked"
    cancelled = "Cancelled"
    returned = "Returned"


class RefundStatus(str, Enum):
    processed = "processed"
    queued = "queued"
    failed = "failed"


# Statuses an admin can pick from the status control
SELECTABLE_STATUSES = (BookingStatus.cancelled.value, BookingStatus.returned.value)


class ServiceLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    duration: Optional[Any] = None
    price: Optional[Any] = None


class Booking(BaseModel):
    """A `bookings` document as held by the admin board."""
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    doc_id: str = Field(..., alias="docId")
    shop: Optional[str] = None
    barber: Optional[str] = None
    location: Optional[str] = None
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    service: Optional[Any] = None
    service_details: Optional[List[ServiceLine]] = Field(None, alias="serviceDetails")
    date: Optional[Any] = None
    start: Optional[Any] = None
    end: Optional[Any] = None
    duration: Optional[Any] = None
    total: Optional[Any] = None
    status: Optional[str] = None
    refund_status: Optional[str] = Field(None, alias="refundStatus")
    refund_id: Optional[str] = Field(None, alias="refundId")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    razorpay_payment_id: Optional[str] = None
    created_at: Optional[Any] = Field(None, alias="createdAt")
    updated_at: Optional[Any] = Field(None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Booking":
        return cls.model_validate({**(data or {}), "docId": doc_id})

    @property
    def created_seconds(self) -> int:
        """`createdAt` in epoch seconds; missing or unreadable timestamps count as 0."""
        return timestamp_seconds(self.created_at)

    @property
    def payment_reference(self) -> Optional[str]:
        return self.payment_id or self.razorpay_payment_id

    @property
    def effective_status(self) -> str:
        return self.status or BookingStatus.booked.value


def timestamp_seconds(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, datetime):
        return int(value.timestamp())
    # Firestore Timestamp-like objects and serialized {seconds, nanoseconds} maps
    seconds = getattr(value, "seconds", None)
    if seconds is None and isinstance(value, dict):
        seconds = value.get("seconds") or value.get("_seconds")
    if seconds is None and isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value
    try:
        return int(seconds or 0)
    except (TypeError, ValueError):
        return 0


class BookingOut(BaseModel):
    """Booking card as rendered in the admin list."""
    model_config = ConfigDict(populate_by_name=True)

    label: str
    doc_id: str = Field(..., alias="docId")
    shop: Optional[str] = None
    barber: Optional[str] = None
    location: Optional[str] = None
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    services_summary: str = Field(..., alias="servicesSummary")
    service_details: List[ServiceLine] = Field(default_factory=list, alias="serviceDetails")
    date: Optional[Any] = None
    start: Optional[Any] = None
    end: Optional[Any] = None
    duration: Optional[Any] = None
    total: Any = 0
    status: str
    status_editable: bool = Field(..., alias="statusEditable")
    refund_status: Optional[str] = Field(None, alias="refundStatus")
    refund_id: Optional[str] = Field(None, alias="refundId")
    created_label: str = Field(..., alias="createdLabel")


class PendingStatusChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    doc_id: str = Field(..., alias="docId")
    new_status: str = Field(..., alias="newStatus")


class BoardView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    loading: bool
    search: str = ""
    status_filter: str = Field("all", alias="statusFilter")
    shop_filter: str = Field("all", alias="shopFilter")
    shops: List[str] = Field(default_factory=list, description="Shop filter options (superadmin)")
    assigned_shop: Optional[str] = Field(None, alias="assignedShop")
    status_options: List[str] = Field(default_factory=lambda: list(SELECTABLE_STATUSES), alias="statusOptions")
    pending: Optional[PendingStatusChange] = None
    status_message: str = Field("", alias="statusMessage")
    bookings: List[BookingOut] = Field(default_factory=list)


class StatusChangeOut(BaseModel):
    ok: bool
    message: str
    kind: Optional[str] = None
