from datetime import datetime, timedelta, timezone

import pytest

from tripdesk.core.errors import RecordNotFound, ValidationError
from tripdesk.services import FollowUpScheduler
from tripdesk.store import EntityType

NOW = datetime(2025, 12, 1, 9, 0, tzinfo=timezone.utc)


def task(task_id, priority, scheduled_at, status='Pending'):
    return {'id': task_id, 'priority': priority, 'scheduled_at': scheduled_at.isoformat(), 'status': status}


def test_rank_orders_by_priority_then_time():
    tasks = [
        task('low-early', 'Low', NOW - timedelta(days=2)),
        task('high-late', 'High', NOW + timedelta(days=3)),
        task('medium', 'Medium', NOW),
        task('high-early', 'High', NOW - timedelta(hours=1)),
        task('done', 'High', NOW - timedelta(days=5), status='Done'),
    ]

    ranked = FollowUpScheduler.rank(tasks, NOW)

    assert [t['id'] for t in ranked] == ['high-early', 'high-late', 'medium', 'low-early']


def test_overdue_is_strictly_before_now():
    assert FollowUpScheduler.is_overdue(task('a', 'Low', NOW - timedelta(seconds=1)), NOW)
    assert not FollowUpScheduler.is_overdue(task('b', 'Low', NOW), NOW)


def test_due_today_ignores_time_of_day():
    late_tonight = NOW.replace(hour=23, minute=30)
    assert FollowUpScheduler.is_due_today(task('a', 'Low', late_tonight), NOW)
    assert FollowUpScheduler.is_due_today(task('b', 'Low', NOW.replace(hour=0)), NOW)
    assert not FollowUpScheduler.is_due_today(task('c', 'Low', NOW + timedelta(days=1)), NOW)


def test_naive_timestamps_are_treated_as_utc():
    naive = task('a', 'Low', datetime(2025, 11, 30, 12, 0))
    assert FollowUpScheduler.is_overdue(naive, NOW.replace(tzinfo=None))


@pytest.mark.asyncio
async def test_agenda_groups_pending_tasks(desk, lead_data):
    lead = await desk.pipeline.create_lead(lead_data())
    for priority, when in [('Low', NOW - timedelta(days=1)),
                           ('High', NOW + timedelta(hours=4)),
                           ('Medium', NOW + timedelta(days=2)),
                           ('High', NOW - timedelta(hours=2))]:
        await desk.scheduler.create({
            'lead_id': lead['id'], 'type': 'Call', 'priority': priority,
            'scheduled_at': when, 'description': f'{priority} call',
        })

    agenda = desk.scheduler.agenda(NOW)

    assert [t['priority'] for t in agenda['overdue']] == ['High', 'Low']
    assert [t['priority'] for t in agenda['due_today']] == ['High']
    assert [t['priority'] for t in agenda['upcoming']] == ['Medium']
    assert agenda['overdue'][0]['lead_name'] == 'Sara Haddad'


@pytest.mark.asyncio
async def test_complete_stamps_time_and_leaves_agenda(desk, memory_store, lead_data):
    lead = await desk.pipeline.create_lead(lead_data())
    follow_up = await desk.scheduler.create({
        'lead_id': lead['id'], 'type': 'WhatsApp', 'scheduled_at': NOW, 'priority': 'High',
    })

    done = await desk.scheduler.complete(follow_up['id'])

    assert done['status'] == 'Done'
    assert done['completed_at']
    assert desk.scheduler.agenda(NOW) == {'overdue': [], 'due_today': [], 'upcoming': []}
    entries = await memory_store.list(EntityType.AUDIT_LOGS)
    assert entries[0]['action'] == 'Follow-up Completed'
    assert entries[0]['module'] == 'Follow-ups'

    with pytest.raises(ValidationError):
        await desk.scheduler.complete(follow_up['id'])
    with pytest.raises(ValidationError):
        await desk.scheduler.cancel(follow_up['id'])


@pytest.mark.asyncio
async def test_cancel_and_create_rules(desk, lead_data):
    lead = await desk.pipeline.create_lead(lead_data())
    follow_up = await desk.scheduler.create({'lead_id': lead['id'], 'scheduled_at': NOW})

    cancelled = await desk.scheduler.cancel(follow_up['id'])
    assert cancelled['status'] == 'Cancelled'

    with pytest.raises(ValidationError):
        await desk.scheduler.create({'lead_id': lead['id'], 'scheduled_at': NOW, 'status': 'Done'})
    with pytest.raises(ValidationError):
        await desk.scheduler.create({'lead_id': lead['id']})
    with pytest.raises(RecordNotFound):
        await desk.scheduler.complete('missing')
