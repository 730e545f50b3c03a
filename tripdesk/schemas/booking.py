"""
Booking schemas
"""
from datetime import date
from typing import Optional

from pydantic import Field

from tripdesk.models.booking import BookingStatus, BookingType, PaymentStatus
from .base import PatchModel, RecordModel


class BookingCreate(RecordModel):
    id: Optional[str] = None
    type: BookingType = BookingType.TOUR
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: str = Field(min_length=1, max_length=300)
    travel_date: date
    pax_count: int = Field(default=1, ge=1)
    guests: Optional[str] = None
    amount: float = Field(default=0, ge=0)
    details: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    lead_id: Optional[str] = None
    proposal_id: Optional[str] = None
    package_id: Optional[str] = None


class BookingPatch(PatchModel):
    type: Optional[BookingType] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    guests: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    details: Optional[str] = None
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
