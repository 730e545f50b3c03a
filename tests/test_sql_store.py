from datetime import date

import pytest

from tripdesk.core.errors import InventoryExhausted, RecordNotFound, ValidationError
from tripdesk.desk import TripDesk
from tripdesk.services import InventoryReservation
from tripdesk.store import EntityType, SqlStore

DAY = date(2025, 12, 20)


@pytest.fixture
def sql_store():
    return SqlStore(database_url='sqlite://')


@pytest.mark.asyncio
async def test_insert_assigns_id_and_timestamp(sql_store):
    row = await sql_store.insert(EntityType.LEADS, {
        'name': 'Sara', 'email': 'sara@example.com', 'start_date': '2025-12-20',
        'logs': [{'id': 'x', 'type': 'Note', 'content': 'hi', 'timestamp': '2025-11-01T10:00:00+00:00'}],
    })

    assert row['id']
    assert row['created_at']
    assert row['start_date'] == '2025-12-20'
    assert row['status'] == 'New'
    assert row['logs'][0]['content'] == 'hi'

    rows = await sql_store.list(EntityType.LEADS)
    assert [r['id'] for r in rows] == [row['id']]


@pytest.mark.asyncio
async def test_patch_and_remove(sql_store):
    row = await sql_store.insert(EntityType.CUSTOMERS, {'name': 'Sara', 'email': 'sara@example.com'})

    await sql_store.patch(EntityType.CUSTOMERS, row['id'], {'bookings_count': 2, 'last_active': '2025-12-01T09:00:00Z'})
    stored = (await sql_store.list(EntityType.CUSTOMERS))[0]
    assert stored['bookings_count'] == 2
    assert stored['last_active'].startswith('2025-12-01T09:00:00')

    await sql_store.remove(EntityType.CUSTOMERS, row['id'])
    await sql_store.remove(EntityType.CUSTOMERS, row['id'])
    assert await sql_store.list(EntityType.CUSTOMERS) == []


@pytest.mark.asyncio
async def test_patch_missing_row_and_unknown_field(sql_store):
    with pytest.raises(RecordNotFound):
        await sql_store.patch(EntityType.BOOKINGS, 'missing', {'status': 'Cancelled'})
    with pytest.raises(ValidationError) as exc:
        await sql_store.insert(EntityType.LEADS, {'name': 'Sara', 'shoe_size': 42})
    assert exc.value.field == 'shoe_size'


@pytest.mark.asyncio
async def test_conditional_update_enforces_capacity(sql_store):
    await sql_store.set_capacity(DAY, 10)

    assert (await sql_store.reserve_capacity(DAY, 9)).success
    refused = await sql_store.reserve_capacity(DAY, 2)

    assert not refused.success
    assert refused.error == 'capacity_exhausted'
    assert refused.available == 1
    assert (await sql_store.get_capacity(DAY))['booked'] == 9


@pytest.mark.asyncio
async def test_blocked_and_unconfigured_dates(sql_store):
    await sql_store.set_capacity(DAY, 10, is_blocked=True)

    assert (await sql_store.reserve_capacity(DAY, 1)).error == 'date_blocked'
    assert (await sql_store.reserve_capacity(date(2026, 2, 1), 1)).error == 'not_configured'
    assert await sql_store.get_capacity(date(2026, 2, 1)) is None


@pytest.mark.asyncio
async def test_release_clamps_at_zero(sql_store):
    await sql_store.set_capacity(DAY, 10)
    await sql_store.reserve_capacity(DAY, 3)

    first = await sql_store.release_capacity(DAY, 3)
    second = await sql_store.release_capacity(DAY, 3)

    assert first.success and not first.clamped
    assert second.success and second.clamped
    assert (await sql_store.get_capacity(DAY))['booked'] == 0


@pytest.mark.asyncio
async def test_capacity_below_booked_is_rejected(sql_store):
    await sql_store.set_capacity(DAY, 10)
    await sql_store.reserve_capacity(DAY, 6)

    with pytest.raises(ValidationError):
        await sql_store.set_capacity(DAY, 5)
    assert (await sql_store.get_capacity(DAY))['capacity'] == 10


@pytest.mark.asyncio
async def test_conversion_against_sqlite(sql_store):
    desk = TripDesk(sql_store, performed_by='Agent Smith')
    await desk.inventory.open_date(DAY, 10)
    lead = await desk.pipeline.create_lead({
        'name': 'Sara', 'email': 'a@x.com', 'destination': 'Baku',
        'start_date': '2025-12-20', 'pax_adult': 2, 'potential_value': 900,
    })

    result = await desk.conversion.convert(lead['id'])

    bookings = await sql_store.list(EntityType.BOOKINGS)
    assert [b['id'] for b in bookings] == [result.booking_id]
    assert bookings[0]['travel_date'] == '2025-12-20'
    leads = await sql_store.list(EntityType.LEADS)
    assert leads[0]['status'] == 'Converted'
    assert leads[0]['converted_at']
    assert (await sql_store.get_capacity(DAY))['booked'] == 2

    with pytest.raises(InventoryExhausted):
        await InventoryReservation(sql_store).reserve(DAY, 9)
