import asyncio
from datetime import date

import pytest

from tripdesk.core.errors import (
    InventoryExhausted, PreconditionFailed, RemoteUnavailable, ValidationError,
)
from tripdesk.services import seats_for
from tripdesk.store import EntityType

DAY = date(2025, 12, 20)


async def open_seats(memory_store, capacity=10, booked=0):
    await memory_store.set_capacity(DAY, capacity)
    if booked:
        await memory_store.reserve_capacity(DAY, booked)


async def audit_entries(memory_store, text=None):
    entries = await memory_store.list(EntityType.AUDIT_LOGS)
    if text is None:
        return entries
    return [e for e in entries if text in e['details']]


def test_seats_count_adults_and_children_only():
    assert seats_for({'pax_adult': 2, 'pax_child': 1, 'pax_infant': 1}) == 3
    assert seats_for({'travelers': '4 Adults'}) == 4
    assert seats_for({'pax_adult': 0, 'travelers': '2 pax'}) == 2
    assert seats_for({'travelers': 'a couple'}) is None


@pytest.mark.asyncio
async def test_new_customer_is_created_and_lead_converted(desk, memory_store, lead_data):
    await open_seats(memory_store)
    lead = await desk.pipeline.create_lead(lead_data(email='a@x.com', phone=None))

    result = await desk.conversion.convert(lead['id'])

    customers = await memory_store.list(EntityType.CUSTOMERS)
    bookings = await memory_store.list(EntityType.BOOKINGS)
    assert len(customers) == 1
    assert result.customer_created
    assert len(bookings) == 1
    booking = bookings[0]
    assert booking['id'] == result.booking_id
    assert booking['status'] == 'Confirmed'
    assert booking['payment_status'] == 'Unpaid'
    assert booking['customer_id'] == customers[0]['id']
    assert booking['title'] == 'Baku'
    assert booking['pax_count'] == 2

    stored_lead = memory_store.get(EntityType.LEADS, lead['id'])
    assert stored_lead['status'] == 'Converted'
    assert stored_lead['customer_id'] == customers[0]['id']
    assert stored_lead['logs'][0]['type'] == 'System'
    assert 'customer created' in stored_lead['logs'][0]['content']

    assert len(await audit_entries(memory_store, 'customer created')) == 1
    assert (await memory_store.get_capacity(DAY))['booked'] == 2
    assert result.consistent


@pytest.mark.asyncio
async def test_existing_customer_is_linked_case_insensitively(desk, memory_store, lead_data):
    await open_seats(memory_store)
    existing = await memory_store.insert(EntityType.CUSTOMERS, {
        'name': 'Sara H.', 'email': 'A@x.com', 'type': 'New', 'bookings_count': 0, 'total_spent': 0,
    })
    lead = await desk.pipeline.create_lead(lead_data(email='a@x.com', phone=None))

    result = await desk.conversion.convert(lead['id'])

    customers = await memory_store.list(EntityType.CUSTOMERS)
    assert [c['id'] for c in customers] == [existing['id']]
    assert not result.customer_created
    assert memory_store.get(EntityType.BOOKINGS, result.booking_id)['customer_id'] == existing['id']
    assert len(await audit_entries(memory_store, 'customer linked')) == 1
    assert customers[0]['bookings_count'] == 1
    assert customers[0]['total_spent'] == 1800


@pytest.mark.asyncio
async def test_exhausted_inventory_leaves_no_trace(desk, memory_store, lead_data):
    await open_seats(memory_store, capacity=10, booked=9)
    lead = await desk.pipeline.create_lead(lead_data(pax_adult=2))

    with pytest.raises(InventoryExhausted):
        await desk.conversion.convert(lead['id'])

    assert await memory_store.list(EntityType.BOOKINGS) == []
    assert await memory_store.list(EntityType.CUSTOMERS) == []
    assert memory_store.get(EntityType.LEADS, lead['id'])['status'] == 'New'
    assert (await memory_store.get_capacity(DAY))['booked'] == 9
    assert desk.bookings.items == []
    assert desk.customers.items == []


@pytest.mark.asyncio
async def test_failed_lead_update_keeps_booking_and_warns(desk, store, memory_store, lead_data):
    await open_seats(memory_store)
    lead = await desk.pipeline.create_lead(lead_data())
    store.fail('patch', EntityType.LEADS, RemoteUnavailable('lead row locked'))

    result = await desk.conversion.convert(lead['id'])

    assert memory_store.get(EntityType.BOOKINGS, result.booking_id) is not None
    assert desk.bookings.get(result.booking_id) is not None
    assert (await memory_store.get_capacity(DAY))['booked'] == 2
    assert memory_store.get(EntityType.LEADS, lead['id'])['status'] == 'New'

    assert not result.consistent
    assert result.warnings[0].code == 'consistency_warning'
    warnings = [e for e in await audit_entries(memory_store) if e['severity'] == 'Warning']
    assert len(warnings) == 1
    assert warnings[0]['action'] == 'Conversion Inconsistency'
    assert result.booking_id in warnings[0]['details']


@pytest.mark.asyncio
async def test_failed_booking_releases_seats_and_new_customer(desk, store, memory_store, lead_data):
    await open_seats(memory_store)
    lead = await desk.pipeline.create_lead(lead_data())
    store.fail('insert', EntityType.BOOKINGS, RemoteUnavailable('bookings table offline'))

    with pytest.raises(RemoteUnavailable):
        await desk.conversion.convert(lead['id'])

    assert (await memory_store.get_capacity(DAY))['booked'] == 0
    assert await memory_store.list(EntityType.CUSTOMERS) == []
    assert memory_store.get(EntityType.LEADS, lead['id'])['status'] == 'New'
    assert desk.bookings.items == []


@pytest.mark.asyncio
async def test_cancelled_conversion_releases_seats_and_new_customer(desk, store, memory_store, lead_data):
    await open_seats(memory_store)
    lead = await desk.pipeline.create_lead(lead_data())
    store.hold('insert', EntityType.BOOKINGS)
    store.fail('insert', EntityType.BOOKINGS, RemoteUnavailable('never answered'))

    task = asyncio.create_task(desk.conversion.convert(lead['id']))
    for _ in range(200):
        if store.count('insert', EntityType.BOOKINGS):
            break
        await asyncio.sleep(0)
    assert (await memory_store.get_capacity(DAY))['booked'] == 2
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert await memory_store.list(EntityType.BOOKINGS) == []
    assert (await memory_store.get_capacity(DAY))['booked'] == 0
    assert await memory_store.list(EntityType.CUSTOMERS) == []
    assert memory_store.get(EntityType.LEADS, lead['id'])['status'] == 'New'
    assert desk.bookings.items == []


@pytest.mark.asyncio
async def test_missing_booking_data_fails_before_side_effects(desk, store, memory_store, lead_data):
    lead = await desk.pipeline.create_lead(lead_data(start_date=None, potential_value=0))
    calls = len(store.calls)

    with pytest.raises(PreconditionFailed) as exc:
        await desk.conversion.convert(lead['id'])

    assert set(exc.value.missing) == {'travel_date', 'amount'}
    assert not [c for c in store.calls[calls:] if c[0] != 'list']


@pytest.mark.asyncio
async def test_converted_or_unknown_lead_is_rejected(desk, memory_store, lead_data):
    await open_seats(memory_store)
    lead = await desk.pipeline.create_lead(lead_data())
    await desk.conversion.convert(lead['id'])

    with pytest.raises(PreconditionFailed):
        await desk.conversion.convert(lead['id'])
    with pytest.raises(PreconditionFailed) as exc:
        await desk.conversion.convert('no-such-lead')
    assert exc.value.missing == ['lead']
    assert len(await memory_store.list(EntityType.BOOKINGS)) == 1


@pytest.mark.asyncio
async def test_explicit_pax_and_date_override_lead(desk, memory_store, lead_data):
    await memory_store.set_capacity(date(2026, 1, 10), 4)
    lead = await desk.pipeline.create_lead(lead_data())

    with pytest.raises(ValidationError):
        await desk.conversion.convert(lead['id'], pax_count=0)
    result = await desk.conversion.convert(lead['id'], pax_count=4, travel_date='2026-01-10')

    assert result.booking['pax_count'] == 4
    assert result.booking['travel_date'] == '2026-01-10'
    assert (await memory_store.get_capacity(date(2026, 1, 10)))['booked'] == 4


@pytest.mark.asyncio
async def test_proposal_option_sets_title_and_amount(desk, memory_store, lead_data):
    await open_seats(memory_store)
    lead = await desk.pipeline.create_lead(lead_data(destination='Bali'))
    proposal = await desk.proposals.create({
        'lead_id': lead['id'],
        'title': 'Bali Escape',
        'status': 'Sent',
        'options': [
            {'name': 'Standard', 'price': 2100, 'hotels': ['Ubud Garden']},
            {'name': 'Luxury', 'price': 3200, 'hotels': ['Four Seasons Jimbaran', 'Amandari']},
        ],
    })

    with pytest.raises(PreconditionFailed) as exc:
        await desk.conversion.convert(lead['id'], proposal_id=proposal['id'])
    assert exc.value.missing == ['option']

    result = await desk.conversion.convert(lead['id'], proposal_id=proposal['id'], option_id='Luxury')

    booking = memory_store.get(EntityType.BOOKINGS, result.booking_id)
    assert booking['title'] == 'Bali Escape - Luxury'
    assert booking['amount'] == 3200
    assert booking['proposal_id'] == proposal['id']
    assert 'Amandari' in booking['details']
    assert memory_store.get(EntityType.PROPOSALS, proposal['id'])['status'] == 'Accepted'


@pytest.mark.asyncio
async def test_second_booking_makes_customer_returning(desk, memory_store, lead_data):
    await open_seats(memory_store)
    first = await desk.pipeline.create_lead(lead_data())
    await desk.conversion.convert(first['id'])
    second = await desk.pipeline.create_lead(lead_data(destination='Tbilisi'), confirm_duplicate=True)

    result = await desk.conversion.convert(second['id'])

    customer = memory_store.get(EntityType.CUSTOMERS, result.customer_id)
    assert customer['bookings_count'] == 2
    assert customer['type'] == 'Returning'
    assert customer['total_spent'] == 3600
    assert len(await memory_store.list(EntityType.CUSTOMERS)) == 1
