from tripdesk.core.errors import (
    ConsistencyWarning, InvalidTransition, InventoryExhausted, PreconditionFailed,
    RecordNotFound, RemoteUnavailable,
)
from tripdesk.services import describe_error, error_payload


def test_capacity_problem_is_distinct_from_network_failure():
    capacity = describe_error(InventoryExhausted('2025-12-20', 2, available=1, reason='capacity_exhausted'))
    network = describe_error(RemoteUnavailable('connection reset'))

    assert capacity['code'] == 'inventory_exhausted'
    assert not capacity['retryable']
    assert '2025-12-20' in capacity['message']
    assert 'seats' in capacity['message']
    assert 'another date' in capacity['message']
    assert network['retryable']
    assert 'try again' in network['message']


def test_blocked_date_message():
    described = describe_error(InventoryExhausted('2025-12-24', 1, available=0, reason='date_blocked'))
    assert described['message'] == '2025-12-24 is closed for bookings. Pick another date.'


def test_specific_messages():
    assert describe_error(InvalidTransition('Cold', 'Hot'))['message'] == 'A lead cannot move from Cold to Hot.'
    assert describe_error(RecordNotFound('follow_ups', 'f1'))['message'] == \
        'This follow-up record no longer exists.'
    assert 'missing travel_date, amount' in describe_error(
        PreconditionFailed('cannot convert', missing=['travel_date', 'amount']))['message']
    assert describe_error(ConsistencyWarning('lead not updated'))['message'].endswith('lead not updated')


def test_unexpected_errors_are_not_retryable():
    described = describe_error(KeyError('boom'))
    assert described == {'code': 'keyerror', 'message': "'boom'", 'retryable': False}


def test_error_payload_shape():
    payload = error_payload(RemoteUnavailable('bad gateway', status_code=502))
    assert payload['success'] is False
    assert payload['code'] == 'remote_unavailable'
    assert payload['retryable'] is True
    assert payload['details'] == {'status_code': 502}
