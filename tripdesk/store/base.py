"""
Remote store contract

The authoritative copy of every entity lives behind this interface. All
methods are coroutines; implementations raise RemoteUnavailable for
transport/service failures and RecordNotFound when patching a missing id.
"""
import abc
import enum
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional


class EntityType(str, enum.Enum):
    """Collections held by the store (values are table names)"""
    LEADS = "leads"
    CUSTOMERS = "customers"
    BOOKINGS = "bookings"
    FOLLOW_UPS = "follow_ups"
    AUDIT_LOGS = "audit_logs"
    PROPOSALS = "proposals"


# Error codes reported by the capacity procedures
CAPACITY_EXHAUSTED = "capacity_exhausted"
DATE_BLOCKED = "date_blocked"
NOT_CONFIGURED = "not_configured"


@dataclass
class CapacityResult:
    """Outcome of reserve_capacity / release_capacity"""
    success: bool
    error: Optional[str] = None
    # Release asked for more seats than were booked; booked was clamped at zero
    clamped: bool = False
    available: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'error': self.error,
            'clamped': self.clamped,
            'available': self.available,
        }


class RemoteStore(abc.ABC):
    """Networked data service consumed by the core"""

    @abc.abstractmethod
    async def list(self, entity_type: EntityType) -> List[Dict[str, Any]]:
        """All records, newest first"""

    @abc.abstractmethod
    async def insert(self, entity_type: EntityType, record: Dict[str, Any]) -> Dict[str, Any]:
        """Persist a record; returns it with server-assigned id/timestamps"""

    @abc.abstractmethod
    async def patch(self, entity_type: EntityType, record_id: str, fields: Dict[str, Any]) -> None:
        """Update some fields; RecordNotFound if the id is absent"""

    @abc.abstractmethod
    async def remove(self, entity_type: EntityType, record_id: str) -> None:
        """Delete a record (missing ids are ignored)"""

    @abc.abstractmethod
    async def reserve_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        """Atomically add pax to a date's booked count if it fits"""

    @abc.abstractmethod
    async def release_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        """Atomically remove pax from a date's booked count, clamping at zero"""

    @abc.abstractmethod
    async def get_capacity(self, travel_date: date) -> Optional[Dict[str, Any]]:
        """{date, capacity, booked, is_blocked} for a date, or None"""

    @abc.abstractmethod
    async def set_capacity(self, travel_date: date, capacity: int, is_blocked: bool = False) -> Dict[str, Any]:
        """Create or resize a date's pool (admin operation)"""
