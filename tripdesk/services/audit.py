"""
Audit trail

Append-only: entries are created, never patched or deleted.
"""
import logging
from typing import Any, Dict, Optional

from tripdesk.core.config import settings
from tripdesk.core.errors import TripDeskError
from tripdesk.models.audit import AuditSeverity
from tripdesk.schemas.audit import AuditEntry
from tripdesk.sync.collection import SynchronizedCollection

LOGGER = logging.getLogger(__name__)

MODULE_LEADS = 'Leads'
MODULE_BOOKINGS = 'Bookings'
MODULE_CUSTOMERS = 'Customers'
MODULE_FOLLOW_UPS = 'Follow-ups'


class AuditTrail:

    def __init__(self, audit_logs: SynchronizedCollection, performed_by: str = None):
        self.audit_logs = audit_logs
        self.performed_by = performed_by or settings.DEFAULT_PERFORMED_BY

    async def record(
        self,
        action: str,
        module: str,
        details: str = '',
        severity: AuditSeverity = AuditSeverity.INFO,
        performed_by: str = None,
    ) -> Dict[str, Any]:
        entry = AuditEntry(
            action=action,
            module=module,
            details=details,
            severity=severity,
            performed_by=performed_by or self.performed_by,
        )
        return await self.audit_logs.create(entry)

    async def record_quietly(self, action: str, module: str, details: str = '',
                             severity: AuditSeverity = AuditSeverity.INFO,
                             performed_by: str = None) -> Optional[Dict[str, Any]]:
        """Like record(), but a failed write is logged instead of raised"""
        try:
            return await self.record(action, module, details, severity, performed_by)
        except TripDeskError as e:
            LOGGER.error("audit entry '%s' (%s) was not written: %s", action, module, e)
            return None
