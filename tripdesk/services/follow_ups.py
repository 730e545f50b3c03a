"""
Follow-up scheduler

Tasks never change state on their own: complete() and cancel() are the only
ways out of Pending.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

from tripdesk.core.clock import parse_datetime, utcnow
from tripdesk.core.errors import RecordNotFound, ValidationError
from tripdesk.models.follow_up import FollowUpPriority, FollowUpStatus
from tripdesk.schemas.base import coerce
from tripdesk.schemas.follow_up import FollowUpCreate
from tripdesk.sync.collection import SynchronizedCollection
from .audit import MODULE_FOLLOW_UPS, AuditTrail

LOGGER = logging.getLogger(__name__)

PRIORITY_ORDER = {
    FollowUpPriority.HIGH.value: 0,
    FollowUpPriority.MEDIUM.value: 1,
    FollowUpPriority.LOW.value: 2,
}


def _aware(now: datetime = None) -> datetime:
    now = now or utcnow()
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


class FollowUpScheduler:

    def __init__(self, follow_ups: SynchronizedCollection, audit: AuditTrail = None,
                 leads: SynchronizedCollection = None):
        self.follow_ups = follow_ups
        self.audit = audit
        self.leads = leads

    # ==================== RANKING ====================

    @staticmethod
    def rank(tasks: Iterable[Dict[str, Any]], now: datetime = None) -> List[Dict[str, Any]]:
        """Pending tasks, High before Medium before Low, then earliest first"""
        pending = [t for t in tasks if t.get('status', FollowUpStatus.PENDING.value) == FollowUpStatus.PENDING.value]
        return sorted(pending, key=lambda t: (
            PRIORITY_ORDER.get(t.get('priority'), PRIORITY_ORDER[FollowUpPriority.MEDIUM.value]),
            parse_datetime(t['scheduled_at']),
        ))

    @staticmethod
    def is_overdue(task: Dict[str, Any], now: datetime = None) -> bool:
        return parse_datetime(task['scheduled_at']) < _aware(now)

    @staticmethod
    def is_due_today(task: Dict[str, Any], now: datetime = None) -> bool:
        """Same calendar day as `now`, in now's timezone, whatever the time"""
        now = _aware(now)
        return parse_datetime(task['scheduled_at']).astimezone(now.tzinfo).date() == now.date()

    def agenda(self, now: datetime = None) -> Dict[str, List[Dict[str, Any]]]:
        """Ranked pending tasks split into overdue, due_today and upcoming"""
        now = _aware(now)
        agenda = {'overdue': [], 'due_today': [], 'upcoming': []}
        for task in self.rank(self.follow_ups.items, now):
            task['overdue'] = self.is_overdue(task, now)
            task['due_today'] = self.is_due_today(task, now)
            if task['overdue']:
                agenda['overdue'].append(task)
            elif task['due_today']:
                agenda['due_today'].append(task)
            else:
                agenda['upcoming'].append(task)
        return agenda

    # ==================== MUTATIONS ====================

    async def create(self, follow_up) -> Dict[str, Any]:
        task = coerce(FollowUpCreate, follow_up)
        if task.status != FollowUpStatus.PENDING.value:
            raise ValidationError("New follow-ups must be Pending", field='status')
        if task.lead_name is None and self.leads is not None:
            lead = self.leads.get(task.lead_id)
            if lead is not None:
                task = task.model_copy(update={'lead_name': lead.get('name')})
        return await self.follow_ups.create(task)

    async def complete(self, follow_up_id: str, performed_by: str = None) -> Dict[str, Any]:
        task = await self._pending(follow_up_id)
        updated = await self.follow_ups.update(follow_up_id, {
            'status': FollowUpStatus.DONE,
            'completed_at': utcnow(),
        })
        if self.audit:
            await self.audit.record_quietly(
                'Follow-up Completed', MODULE_FOLLOW_UPS,
                f"{task.get('type')} for {task.get('lead_name') or task.get('lead_id')}",
                performed_by=performed_by,
            )
        return updated

    async def cancel(self, follow_up_id: str) -> Dict[str, Any]:
        await self._pending(follow_up_id)
        return await self.follow_ups.update(follow_up_id, {'status': FollowUpStatus.CANCELLED})

    async def _pending(self, follow_up_id: str) -> Dict[str, Any]:
        await self.follow_ups.ensure_loaded()
        task = self.follow_ups.get(follow_up_id)
        if task is None:
            raise RecordNotFound('follow_ups', follow_up_id)
        if task.get('status') != FollowUpStatus.PENDING.value:
            raise ValidationError(f"Follow-up {follow_up_id} is already {task.get('status')}", field='status')
        return task
