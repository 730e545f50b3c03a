"""
Lead schemas
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tripdesk.core.clock import utcnow
from tripdesk.core.database import new_id
from tripdesk.models.lead import LeadLogType, LeadPriority, LeadStatus
from .base import PatchModel, RecordModel


def _clean_email(value: Optional[str]) -> Optional[str]:
    value = (value or '').strip()
    if not value:
        return None
    local, _, domain = value.rpartition('@')
    if not local or '.' not in domain or ' ' in value:
        raise ValueError('invalid email address')
    return value


def _clean_text(value: Optional[str]) -> Optional[str]:
    value = (value or '').strip()
    return value or None


class LeadLogEntry(BaseModel):
    """Immutable activity log entry"""
    model_config = ConfigDict(frozen=True, extra='forbid', use_enum_values=True)

    id: str = Field(default_factory=new_id)
    type: LeadLogType = LeadLogType.NOTE
    content: str = Field(min_length=1)
    timestamp: datetime = Field(default_factory=utcnow)


class LeadCreate(RecordModel):
    id: Optional[str] = None

    # Contact
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    is_whatsapp_same: bool = False
    location: Optional[str] = None

    # Trip
    destination: Optional[str] = None
    service_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    travelers: Optional[str] = None
    pax_adult: Optional[int] = Field(default=None, ge=0)
    pax_child: Optional[int] = Field(default=None, ge=0)
    pax_infant: Optional[int] = Field(default=None, ge=0)
    budget: Optional[str] = None
    preferences: Optional[str] = None

    # Pipeline
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM
    potential_value: float = Field(default=0, ge=0)
    source: str = 'Website'
    assigned_to: Optional[int] = None
    logs: List[LeadLogEntry] = Field(default_factory=list)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value):
        return _clean_email(value)

    @field_validator('phone', 'whatsapp', 'destination')
    @classmethod
    def strip_text(cls, value):
        return _clean_text(value)

    @model_validator(mode='after')
    def check_contact(self):
        if not self.email and not self.phone:
            raise ValueError('an email address or phone number is required')
        if self.is_whatsapp_same:
            self.whatsapp = self.phone
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date is before start_date')
        return self


class LeadPatch(PatchModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    is_whatsapp_same: Optional[bool] = None
    location: Optional[str] = None
    destination: Optional[str] = None
    service_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    travelers: Optional[str] = None
    pax_adult: Optional[int] = Field(default=None, ge=0)
    pax_child: Optional[int] = Field(default=None, ge=0)
    pax_infant: Optional[int] = Field(default=None, ge=0)
    budget: Optional[str] = None
    preferences: Optional[str] = None
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None
    potential_value: Optional[float] = Field(default=None, ge=0)
    source: Optional[str] = None
    assigned_to: Optional[int] = None
    logs: Optional[List[LeadLogEntry]] = None
    customer_id: Optional[str] = None
    converted_at: Optional[datetime] = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value):
        return _clean_email(value)

    @model_validator(mode='after')
    def mirror_whatsapp(self):
        if self.is_whatsapp_same and self.phone is not None:
            self.whatsapp = self.phone
        return self
