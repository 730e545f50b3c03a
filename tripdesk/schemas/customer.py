"""
Customer schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from tripdesk.models.customer import CustomerStatus, CustomerType
from .base import PatchModel, RecordModel


class CustomerCreate(RecordModel):
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    type: CustomerType = CustomerType.NEW
    status: CustomerStatus = CustomerStatus.ACTIVE
    tags: List[str] = Field(default_factory=list)
    bookings_count: int = Field(default=0, ge=0)
    total_spent: float = Field(default=0, ge=0)
    last_active: Optional[datetime] = None


class CustomerPatch(PatchModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    type: Optional[CustomerType] = None
    status: Optional[CustomerStatus] = None
    tags: Optional[List[str]] = None
    bookings_count: Optional[int] = Field(default=None, ge=0)
    total_spent: Optional[float] = Field(default=None, ge=0)
    last_active: Optional[datetime] = None
