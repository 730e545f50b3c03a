"""
In-memory store

Process-local stand-in for the hosted store. Used by tests and offline demos;
capacity procedures hold an asyncio.Lock so they behave atomically for
concurrent coroutines.
"""
import asyncio
import copy
from datetime import date
from typing import Any, Dict, List, Optional

from tripdesk.core.clock import now_iso, parse_date
from tripdesk.core.database import new_id
from tripdesk.core.errors import RecordNotFound, ValidationError
from .base import (
    CAPACITY_EXHAUSTED, DATE_BLOCKED, NOT_CONFIGURED,
    CapacityResult, EntityType, RemoteStore,
)

# Field used as the "created" timestamp per collection
_CREATED_FIELD = {EntityType.AUDIT_LOGS: 'timestamp'}


class MemoryStore(RemoteStore):

    def __init__(self):
        self._tables: Dict[EntityType, Dict[str, Dict[str, Any]]] = {t: {} for t in EntityType}
        self._inventory: Dict[date, Dict[str, Any]] = {}
        self._capacity_lock = asyncio.Lock()
        self._sequence = 0

    # ==================== RECORDS ====================

    async def list(self, entity_type: EntityType) -> List[Dict[str, Any]]:
        table = self._tables[EntityType(entity_type)]
        # Newest first; insertion sequence breaks timestamp ties
        rows = sorted(table.values(), key=lambda r: r['_seq'], reverse=True)
        return [self._public(row) for row in rows]

    async def insert(self, entity_type: EntityType, record: Dict[str, Any]) -> Dict[str, Any]:
        entity_type = EntityType(entity_type)
        row = copy.deepcopy(record)
        row['id'] = row.get('id') or new_id()
        row.setdefault(_CREATED_FIELD.get(entity_type, 'created_at'), now_iso())
        self._sequence += 1
        row['_seq'] = self._sequence
        self._tables[entity_type][row['id']] = row
        return self._public(row)

    async def patch(self, entity_type: EntityType, record_id: str, fields: Dict[str, Any]) -> None:
        entity_type = EntityType(entity_type)
        row = self._tables[entity_type].get(record_id)
        if row is None:
            raise RecordNotFound(entity_type.value, record_id)
        row.update(copy.deepcopy(fields))

    async def remove(self, entity_type: EntityType, record_id: str) -> None:
        self._tables[EntityType(entity_type)].pop(record_id, None)

    def get(self, entity_type: EntityType, record_id: str) -> Optional[Dict[str, Any]]:
        """Synchronous peek for tests and the CLI"""
        row = self._tables[EntityType(entity_type)].get(record_id)
        return self._public(row) if row else None

    @staticmethod
    def _public(row: Dict[str, Any]) -> Dict[str, Any]:
        return {k: copy.deepcopy(v) for k, v in row.items() if k != '_seq'}

    # ==================== CAPACITY ====================

    async def reserve_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        async with self._capacity_lock:
            slot = self._inventory.get(parse_date(travel_date))
            if slot is None:
                return CapacityResult(success=False, error=NOT_CONFIGURED, available=0)
            if slot['is_blocked']:
                return CapacityResult(success=False, error=DATE_BLOCKED, available=0)
            available = slot['capacity'] - slot['booked']
            if pax_count > available:
                return CapacityResult(success=False, error=CAPACITY_EXHAUSTED, available=available)
            slot['booked'] += pax_count
            return CapacityResult(success=True, available=available - pax_count)

    async def release_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        async with self._capacity_lock:
            slot = self._inventory.get(parse_date(travel_date))
            if slot is None:
                return CapacityResult(success=False, error=NOT_CONFIGURED)
            clamped = pax_count > slot['booked']
            slot['booked'] = max(0, slot['booked'] - pax_count)
            return CapacityResult(success=True, clamped=clamped,
                                  available=slot['capacity'] - slot['booked'])

    async def get_capacity(self, travel_date: date) -> Optional[Dict[str, Any]]:
        slot = self._inventory.get(parse_date(travel_date))
        return dict(slot) if slot else None

    async def set_capacity(self, travel_date: date, capacity: int, is_blocked: bool = False) -> Dict[str, Any]:
        key = parse_date(travel_date)
        async with self._capacity_lock:
            slot = self._inventory.get(key)
            booked = slot['booked'] if slot else 0
            if capacity < booked:
                raise ValidationError(
                    f"Capacity {capacity} is below the {booked} pax already booked on {key}",
                    field='capacity'
                )
            slot = {'date': key.isoformat(), 'capacity': capacity, 'booked': booked, 'is_blocked': is_blocked}
            self._inventory[key] = slot
            return dict(slot)
