"""
Lead pipeline

Status transitions follow a fixed adjacency table:

    New        -> Warm, Hot, Cold, Offer Sent, Converted
    Warm       -> Hot, Cold, Offer Sent, Converted
    Hot        -> Offer Sent, Converted, Cold
    Offer Sent -> Converted, Cold, Hot
    Cold       -> New, Warm            (reactivation)
    Converted  -> (terminal)

With LEAD_TRANSITIONS_STRICT=false any move is allowed except leaving
Converted.

Duplicate detection runs on create only and never blocks: a match raises
DuplicateLeadSuspected and the caller retries with confirm_duplicate=True.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from tripdesk.core.clock import utcnow
from tripdesk.core.config import settings
from tripdesk.core.errors import (
    DuplicateLeadSuspected, InvalidTransition, RecordNotFound, ValidationError,
)
from tripdesk.models.audit import AuditSeverity
from tripdesk.models.lead import LeadLogType, LeadStatus
from tripdesk.schemas.base import coerce
from tripdesk.schemas.lead import LeadCreate, LeadLogEntry, LeadPatch
from tripdesk.sync.collection import SynchronizedCollection
from .audit import MODULE_LEADS, AuditTrail

LOGGER = logging.getLogger(__name__)

TRANSITIONS = {
    LeadStatus.NEW: {LeadStatus.WARM, LeadStatus.HOT, LeadStatus.COLD, LeadStatus.OFFER_SENT, LeadStatus.CONVERTED},
    LeadStatus.WARM: {LeadStatus.HOT, LeadStatus.COLD, LeadStatus.OFFER_SENT, LeadStatus.CONVERTED},
    LeadStatus.HOT: {LeadStatus.OFFER_SENT, LeadStatus.CONVERTED, LeadStatus.COLD},
    LeadStatus.OFFER_SENT: {LeadStatus.CONVERTED, LeadStatus.COLD, LeadStatus.HOT},
    LeadStatus.COLD: {LeadStatus.NEW, LeadStatus.WARM},
    LeadStatus.CONVERTED: set(),
}


def _status(value: Union[str, LeadStatus]) -> LeadStatus:
    try:
        return LeadStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown lead status: {value!r}", field='status')


def can_transition(from_status, to_status, strict: bool = True) -> bool:
    current, target = _status(from_status), _status(to_status)
    if current == LeadStatus.CONVERTED:
        return False
    if not strict:
        return True
    return target in TRANSITIONS[current]


def validate_transition(from_status, to_status, strict: bool = True) -> None:
    if not can_transition(from_status, to_status, strict):
        raise InvalidTransition(_status(from_status).value, _status(to_status).value)


# ==================== DEDUPLICATION ====================

def normalize_phone(value: Optional[str]) -> str:
    """Digits only: '+971 50-123 4567' and '971501234567' are the same number"""
    return re.sub(r'\D', '', value or '')


def normalize_email(value: Optional[str]) -> str:
    return (value or '').strip().lower()


def find_duplicates(email: Optional[str], phone: Optional[str],
                    leads: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    email_key = normalize_email(email)
    phone_key = normalize_phone(phone)
    matches = []
    for lead in leads:
        if email_key and normalize_email(lead.get('email')) == email_key:
            matches.append(lead)
        elif phone_key and normalize_phone(lead.get('phone')) == phone_key:
            matches.append(lead)
    return matches


class LeadStateMachine:

    def __init__(self, leads: SynchronizedCollection, audit: AuditTrail = None, strict: bool = None):
        self.leads = leads
        self.audit = audit
        self.strict = settings.LEAD_TRANSITIONS_STRICT if strict is None else strict

    def can_transition(self, from_status, to_status) -> bool:
        return can_transition(from_status, to_status, self.strict)

    async def get(self, lead_id: str) -> Dict[str, Any]:
        await self.leads.ensure_loaded()
        lead = self.leads.get(lead_id)
        if lead is None:
            raise RecordNotFound('leads', lead_id)
        return lead

    # ==================== CREATE ====================

    async def check_duplicates(self, data) -> List[Dict[str, Any]]:
        candidate = coerce(LeadCreate, data)
        await self.leads.ensure_loaded()
        return find_duplicates(candidate.email, candidate.phone, self.leads.items)

    async def create_lead(self, data, confirm_duplicate: bool = False, performed_by: str = None) -> Dict[str, Any]:
        lead = coerce(LeadCreate, data)
        if lead.status == LeadStatus.CONVERTED.value:
            raise ValidationError("Leads are converted through a booking, not created as Converted",
                                  field='status')

        await self.leads.ensure_loaded()
        matches = find_duplicates(lead.email, lead.phone, self.leads.items)
        if matches and not confirm_duplicate:
            LOGGER.warning("lead %r matches %d existing lead(s)", lead.name, len(matches))
            raise DuplicateLeadSuspected(matches)

        created = await self.leads.create(lead)
        if self.audit:
            await self.audit.record_quietly(
                'Lead Created', MODULE_LEADS,
                f"{created.get('name')} via {created.get('source')}"
                + (" (confirmed despite possible duplicate)" if matches else ''),
                performed_by=performed_by,
            )
        return created

    # ==================== UPDATE ====================

    async def transition(self, lead_id: str, to_status, note: str = None,
                         changes: Dict[str, Any] = None, performed_by: str = None) -> Dict[str, Any]:
        """Move a lead to `to_status`, stamping a System log entry"""
        lead = await self.get(lead_id)
        current, target = _status(lead.get('status') or LeadStatus.NEW), _status(to_status)
        if current == target and current != LeadStatus.CONVERTED:
            return lead
        validate_transition(current, target, self.strict)

        entry = LeadLogEntry(
            type=LeadLogType.SYSTEM,
            content=note or f"Status changed from {current.value} to {target.value}",
        )
        patch = dict(changes or {})
        patch.update({
            'status': target.value,
            'logs': [entry.model_dump(mode='json')] + list(lead.get('logs') or []),
        })
        if target == LeadStatus.CONVERTED:
            patch.setdefault('converted_at', utcnow())

        updated = await self.leads.update(lead_id, patch)
        LOGGER.info("lead %s: %s -> %s", lead_id, current.value, target.value)
        if self.audit:
            await self.audit.record_quietly(
                'Lead Status Changed', MODULE_LEADS,
                f"{lead.get('name')}: {current.value} -> {target.value}",
                performed_by=performed_by,
            )
        return updated

    async def update_lead(self, lead_id: str, patch, performed_by: str = None) -> Dict[str, Any]:
        changes = coerce(LeadPatch, patch).changes()
        if 'logs' in changes:
            raise ValidationError("Lead logs are append-only; use append_log()", field='logs')

        lead = await self.get(lead_id)
        if 'status' in changes:
            current = _status(lead.get('status') or LeadStatus.NEW)
            if _status(changes['status']) == current:
                del changes['status']
            else:
                validate_transition(current, changes['status'], self.strict)
        if not changes:
            return lead

        updated = await self.leads.update(lead_id, changes)
        if self.audit:
            await self.audit.record_quietly(
                'Lead Updated', MODULE_LEADS,
                f"{lead.get('name')}: {', '.join(sorted(changes))}",
                performed_by=performed_by,
            )
        return updated

    async def append_log(self, lead_id: str, content: str,
                         log_type: LeadLogType = LeadLogType.NOTE) -> Dict[str, Any]:
        """Prepend an immutable entry; existing entries are never rewritten"""
        try:
            entry = LeadLogEntry(type=log_type, content=content)
        except ValueError as e:
            raise ValidationError(f"Invalid log entry: {e}", field='content') from e
        lead = await self.get(lead_id)
        logs = [entry.model_dump(mode='json')] + list(lead.get('logs') or [])
        return await self.leads.update(lead_id, {'logs': logs})

    async def delete_lead(self, lead_id: str, performed_by: str = None) -> None:
        """Explicit admin removal; the only way a lead is hard-deleted"""
        lead = await self.get(lead_id)
        await self.leads.delete(lead_id)
        if self.audit:
            await self.audit.record_quietly(
                'Lead Deleted', MODULE_LEADS,
                f"{lead.get('name')} ({lead.get('status')})",
                severity=AuditSeverity.WARNING,
                performed_by=performed_by,
            )
