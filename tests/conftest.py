import asyncio

import pytest

from tripdesk.desk import TripDesk
from tripdesk.store import EntityType, MemoryStore, RemoteStore

TRAVEL_DATE = '2025-12-20'


class ScriptedStore(RemoteStore):
    """
    Wraps a real store so tests can delay or fail individual calls.

    hold(method, entity_type) delays the response of the next matching call
    until the returned event is set (the inner store is queried first, so a
    held list() answers with the data as it was when the call was made).
    fail(method, entity_type, error) makes matching calls raise `error`.
    """

    def __init__(self, inner: RemoteStore):
        self.inner = inner
        self.calls = []
        self._gates = {}
        self._failures = {}

    def hold(self, method, entity_type=None) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[(method, _key(entity_type))] = gate
        return gate

    def fail(self, method, entity_type=None, error=None, times=1):
        self._failures[(method, _key(entity_type))] = [error, times]

    def count(self, method, entity_type=None) -> int:
        return sum(1 for m, t in self.calls if m == method and (entity_type is None or t == _key(entity_type)))

    def _take_gate(self, method, entity_type):
        return self._gates.pop((method, entity_type), None) or self._gates.pop((method, None), None)

    def _take_failure(self, method, entity_type):
        for key in ((method, entity_type), (method, None)):
            scripted = self._failures.get(key)
            if scripted is None:
                continue
            error, times = scripted
            if times is not None:
                scripted[1] -= 1
                if scripted[1] <= 0:
                    del self._failures[key]
            return error
        return None

    async def _call(self, method, entity_type, *args):
        entity_type = _key(entity_type)
        self.calls.append((method, entity_type))
        gate = self._take_gate(method, entity_type)
        error = self._take_failure(method, entity_type)
        if error is not None:
            if gate is not None:
                await gate.wait()
            raise error
        result = await getattr(self.inner, method)(*args)
        if gate is not None:
            await gate.wait()
        return result

    async def list(self, entity_type):
        return await self._call('list', entity_type, entity_type)

    async def insert(self, entity_type, record):
        return await self._call('insert', entity_type, entity_type, record)

    async def patch(self, entity_type, record_id, fields):
        return await self._call('patch', entity_type, entity_type, record_id, fields)

    async def remove(self, entity_type, record_id):
        return await self._call('remove', entity_type, entity_type, record_id)

    async def reserve_capacity(self, travel_date, pax_count):
        return await self._call('reserve_capacity', None, travel_date, pax_count)

    async def release_capacity(self, travel_date, pax_count):
        return await self._call('release_capacity', None, travel_date, pax_count)

    async def get_capacity(self, travel_date):
        return await self._call('get_capacity', None, travel_date)

    async def set_capacity(self, travel_date, capacity, is_blocked=False):
        return await self._call('set_capacity', None, travel_date, capacity, is_blocked)


def _key(entity_type):
    return EntityType(entity_type).value if entity_type is not None else None


async def settle(rounds: int = 10):
    """Let scheduled tasks run up to their next suspension point"""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def store(memory_store):
    return ScriptedStore(memory_store)


@pytest.fixture
def desk(store):
    return TripDesk(store, strict_transitions=True, performed_by='Agent Smith')


@pytest.fixture
def lead_data():
    def factory(**overrides):
        data = {
            'name': 'Sara Haddad',
            'email': 'sara@example.com',
            'phone': '+971 50 123 4567',
            'destination': 'Baku',
            'start_date': TRAVEL_DATE,
            'pax_adult': 2,
            'potential_value': 1800,
            'source': 'Website',
        }
        data.update(overrides)
        return {k: v for k, v in data.items() if v is not None}

    return factory
