"""
Lead Model

Travel inquiries from the website, WhatsApp, referrals and manual entry.
"""
import enum
from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, Text, JSON

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin, new_id


class LeadStatus(str, enum.Enum):
    """Lead status in pipeline"""
    NEW = "New"
    WARM = "Warm"
    HOT = "Hot"
    COLD = "Cold"
    OFFER_SENT = "Offer Sent"
    CONVERTED = "Converted"


class LeadPriority(str, enum.Enum):
    """Lead priority"""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class LeadLogType(str, enum.Enum):
    """Kind of entry in a lead's activity log"""
    NOTE = "Note"
    CALL = "Call"
    EMAIL = "Email"
    QUOTE = "Quote"
    SYSTEM = "System"
    WHATSAPP = "WhatsApp"


class Lead(RecordMixin, Base):
    """Prospective customer inquiry"""
    __tablename__ = 'leads'

    id = Column(String(36), primary_key=True, default=new_id)

    # ==================== CONTACT INFO ====================
    name = Column(String(200), nullable=False)
    email = Column(String(120), index=True)
    phone = Column(String(50), index=True)
    whatsapp = Column(String(50))
    is_whatsapp_same = Column(Boolean, default=False)
    location = Column(String(200))

    # ==================== TRIP ====================
    destination = Column(String(200))
    service_type = Column(String(50))
    start_date = Column(Date)
    end_date = Column(Date)
    travelers = Column(String(100))  # Display text, e.g. "2 Adults, 1 Child"
    pax_adult = Column(Integer)
    pax_child = Column(Integer)
    pax_infant = Column(Integer)
    budget = Column(String(100))
    preferences = Column(Text)

    # ==================== PIPELINE ====================
    status = Column(String(30), default=LeadStatus.NEW.value, index=True)  # LeadStatus
    priority = Column(String(20), default=LeadPriority.MEDIUM.value)  # LeadPriority
    potential_value = Column(Float, default=0)
    source = Column(String(50), default='Website')
    assigned_to = Column(Integer, nullable=True)  # Staff ID

    # Newest first, append-only
    logs = Column(JSON, default=list)

    # ==================== CONVERSION ====================
    customer_id = Column(String(36), nullable=True)
    converted_at = Column(DateTime(timezone=True))

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Lead id={self.id} name={self.name!r} status={self.status!r}>"
