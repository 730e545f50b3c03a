"""
Follow-up Model

Scheduled reminders to re-contact a lead.
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin, new_id


class FollowUpType(str, enum.Enum):
    CALL = "Call"
    EMAIL = "Email"
    WHATSAPP = "WhatsApp"
    MEETING = "Meeting"


class FollowUpStatus(str, enum.Enum):
    PENDING = "Pending"
    DONE = "Done"
    CANCELLED = "Cancelled"


class FollowUpPriority(str, enum.Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class FollowUp(RecordMixin, Base):
    """Agent task tied to a lead"""
    __tablename__ = 'follow_ups'

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), nullable=False, index=True)
    lead_name = Column(String(200))

    type = Column(String(20), default=FollowUpType.CALL.value)  # FollowUpType
    description = Column(Text, default='')
    scheduled_at = Column(DateTime(timezone=True), nullable=False, index=True)
    reminder_enabled = Column(Boolean, default=True)
    priority = Column(String(10), default=FollowUpPriority.MEDIUM.value)  # FollowUpPriority
    status = Column(String(20), default=FollowUpStatus.PENDING.value, index=True)  # FollowUpStatus
    assigned_to = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True))
