"""
Audit entry schema (create only; entries are never patched)
"""
from datetime import datetime

from pydantic import Field

from tripdesk.core.clock import utcnow
from tripdesk.models.audit import AuditSeverity
from .base import RecordModel


class AuditEntry(RecordModel):
    action: str = Field(min_length=1, max_length=100)
    module: str = Field(min_length=1, max_length=50)
    performed_by: str = 'System'
    details: str = ''
    severity: AuditSeverity = AuditSeverity.INFO
    timestamp: datetime = Field(default_factory=utcnow)
