"""
Audit Log Model

Append-only trail of mutating admin actions. Rows are never updated or deleted.
"""
import enum
from sqlalchemy import Column, String, DateTime, Text

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin, new_id


class AuditSeverity(str, enum.Enum):
    INFO = "Info"
    WARNING = "Warning"
    CRITICAL = "Critical"


class AuditLog(RecordMixin, Base):
    """One audited action"""
    __tablename__ = 'audit_logs'

    id = Column(String(36), primary_key=True, default=new_id)

    action = Column(String(100), nullable=False, index=True)  # e.g. "Converted Lead"
    module = Column(String(50), nullable=False, index=True)  # e.g. "Leads", "Bookings"
    performed_by = Column(String(100), default='System')
    details = Column(Text, default='')
    severity = Column(String(10), default=AuditSeverity.INFO.value)  # AuditSeverity

    timestamp = Column(DateTime(timezone=True), default=utcnow, index=True)
