from datetime import date

import pytest

from tripdesk.core.errors import InventoryLockFailed, RecordNotFound, RemoteUnavailable, ValidationError
from tripdesk.store import EntityType

DAY = date(2025, 12, 20)


async def converted_booking(desk, memory_store, lead_data):
    await memory_store.set_capacity(DAY, 10)
    lead = await desk.pipeline.create_lead(lead_data(pax_adult=3))
    result = await desk.conversion.convert(lead['id'])
    return result.booking


@pytest.mark.asyncio
async def test_cancel_releases_seats_once(desk, store, memory_store, lead_data):
    booking = await converted_booking(desk, memory_store, lead_data)
    assert (await memory_store.get_capacity(DAY))['booked'] == 3

    cancelled = await desk.booking_desk.cancel(booking['id'], reason='client request')
    again = await desk.booking_desk.cancel(booking['id'])

    assert cancelled['status'] == 'Cancelled'
    assert again['status'] == 'Cancelled'
    assert store.count('release_capacity') == 1
    assert (await memory_store.get_capacity(DAY))['booked'] == 0

    entries = await memory_store.list(EntityType.AUDIT_LOGS)
    assert entries[0]['action'] == 'Booking Cancelled'
    assert 'client request' in entries[0]['details']


@pytest.mark.asyncio
async def test_failed_release_restores_booking_status(desk, store, memory_store, lead_data):
    booking = await converted_booking(desk, memory_store, lead_data)
    store.fail('release_capacity', error=RemoteUnavailable('rpc timeout'))

    with pytest.raises(InventoryLockFailed):
        await desk.booking_desk.cancel(booking['id'])

    assert memory_store.get(EntityType.BOOKINGS, booking['id'])['status'] == 'Confirmed'
    assert desk.bookings.get(booking['id'])['status'] == 'Confirmed'
    assert (await memory_store.get_capacity(DAY))['booked'] == 3


@pytest.mark.asyncio
async def test_completed_or_unknown_bookings_cannot_be_cancelled(desk, memory_store, lead_data):
    booking = await converted_booking(desk, memory_store, lead_data)
    await desk.bookings.update(booking['id'], {'status': 'Completed'})

    with pytest.raises(ValidationError):
        await desk.booking_desk.cancel(booking['id'])
    with pytest.raises(RecordNotFound):
        await desk.booking_desk.cancel('missing')
    assert (await memory_store.get_capacity(DAY))['booked'] == 3
