"""
Inventory reservation

Seats per travel date live in the store and are only ever changed through
its atomic reserve/release procedures; nothing is decremented locally.
"""
import logging
from datetime import date
from typing import Any, Dict, Optional

from tripdesk.core.clock import parse_date
from tripdesk.core.errors import (
    InventoryExhausted, InventoryLockFailed, TripDeskError, ValidationError,
)
from tripdesk.store.base import (
    CAPACITY_EXHAUSTED, DATE_BLOCKED, NOT_CONFIGURED, CapacityResult, RemoteStore,
)

LOGGER = logging.getLogger(__name__)

_EXHAUSTED_REASONS = (CAPACITY_EXHAUSTED, DATE_BLOCKED, NOT_CONFIGURED)


def _arguments(travel_date, pax_count) -> tuple:
    try:
        day = parse_date(travel_date)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid travel date: {travel_date!r}", field='travel_date') from e
    if day is None:
        raise ValidationError("Travel date is required", field='travel_date')
    if not isinstance(pax_count, int) or isinstance(pax_count, bool) or pax_count <= 0:
        raise ValidationError(f"Pax count must be a positive integer, got {pax_count!r}", field='pax_count')
    return day, pax_count


class InventoryReservation:

    def __init__(self, store: RemoteStore):
        self.store = store

    async def reserve(self, travel_date, pax_count: int) -> CapacityResult:
        """
        Reserve seats on a date

        Raises:
            InventoryExhausted: not enough seats, date blocked or never opened
            InventoryLockFailed: the store could not be reached or answered oddly
        """
        day, pax_count = _arguments(travel_date, pax_count)
        try:
            result = await self.store.reserve_capacity(day, pax_count)
        except TripDeskError as e:
            raise InventoryLockFailed(f"Could not reserve {pax_count} pax on {day}: {e.message}",
                                      details={'date': day.isoformat(), 'pax': pax_count}) from e

        if result.success:
            LOGGER.info("reserved %s pax on %s (%s left)", pax_count, day, result.available)
            return result
        if result.error in _EXHAUSTED_REASONS:
            raise InventoryExhausted(day.isoformat(), pax_count, available=result.available, reason=result.error)
        raise InventoryLockFailed(f"Reservation on {day} failed: {result.error or 'unknown error'}",
                                  details={'date': day.isoformat(), 'pax': pax_count, 'error': result.error})

    async def release(self, travel_date, pax_count: int, compensating: bool = False) -> bool:
        """
        Give seats back

        With compensating=True the release undoes an earlier step of a failed
        operation: failures are logged and False is returned instead of raising.
        """
        day, pax_count = _arguments(travel_date, pax_count)
        try:
            result = await self.store.release_capacity(day, pax_count)
        except Exception as e:
            if compensating:
                LOGGER.error("compensating release of %s pax on %s failed: %s", pax_count, day, e)
                return False
            if isinstance(e, TripDeskError):
                raise InventoryLockFailed(f"Could not release {pax_count} pax on {day}: {e.message}",
                                          details={'date': day.isoformat(), 'pax': pax_count}) from e
            raise

        if not result.success:
            if compensating:
                LOGGER.error("compensating release of %s pax on %s rejected: %s", pax_count, day, result.error)
                return False
            raise InventoryLockFailed(f"Release on {day} failed: {result.error or 'unknown error'}",
                                      details={'date': day.isoformat(), 'pax': pax_count, 'error': result.error})

        if result.clamped:
            LOGGER.warning("release of %s pax on %s exceeded booked seats; counter clamped at zero",
                           pax_count, day)
        else:
            LOGGER.info("released %s pax on %s", pax_count, day)
        return True

    async def availability(self, travel_date: date) -> Optional[Dict[str, Any]]:
        day = parse_date(travel_date)
        slot = await self.store.get_capacity(day)
        if slot is None:
            return None
        return {**slot, 'available': max(0, slot['capacity'] - slot['booked'])}

    async def open_date(self, travel_date, capacity: int, is_blocked: bool = False) -> Dict[str, Any]:
        if capacity < 0:
            raise ValidationError("Capacity cannot be negative", field='capacity')
        return await self.store.set_capacity(parse_date(travel_date), capacity, is_blocked)
