"""
SQLAlchemy-backed store

Talks to the relational database directly (SQLite in development,
PostgreSQL in production). Blocking session work runs in a worker thread.
The capacity procedures are single conditional UPDATE statements so the
database, not the client, arbitrates between concurrent agents.
"""
import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tripdesk.core.clock import parse_date
from tripdesk.core.database import create_db_engine, init_db, make_session_factory
from tripdesk.core.errors import RecordNotFound, RemoteUnavailable, ValidationError
from tripdesk.models import AuditLog, Booking, Customer, DailyInventory, FollowUp, Lead, Proposal
from .base import (
    CAPACITY_EXHAUSTED, DATE_BLOCKED, NOT_CONFIGURED,
    CapacityResult, EntityType, RemoteStore,
)

LOGGER = logging.getLogger(__name__)

MODELS = {
    EntityType.LEADS: Lead,
    EntityType.CUSTOMERS: Customer,
    EntityType.BOOKINGS: Booking,
    EntityType.FOLLOW_UPS: FollowUp,
    EntityType.AUDIT_LOGS: AuditLog,
    EntityType.PROPOSALS: Proposal,
}


class SqlStore(RemoteStore):

    def __init__(self, session_factory=None, database_url: str = None):
        if session_factory is None:
            engine = create_db_engine(database_url)
            init_db(engine)
            session_factory = make_session_factory(engine)
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> 'SqlStore':
        return cls(database_url=database_url)

    async def _run(self, fn, *args):
        """Run blocking session work off the event loop, normalising DB errors"""
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            LOGGER.warning("database call %s failed: %s", fn.__name__, e)
            raise RemoteUnavailable(f"Database error: {e.__class__.__name__}: {e}") from e

    @staticmethod
    def _model(entity_type: EntityType):
        return MODELS[EntityType(entity_type)]

    # ==================== RECORDS ====================

    async def list(self, entity_type: EntityType) -> List[Dict[str, Any]]:
        model = self._model(entity_type)

        def _list():
            order = model.timestamp if model is AuditLog else model.created_at
            with self.session_factory() as db:
                rows = db.execute(select(model).order_by(order.desc())).scalars().all()
                return [row.to_dict() for row in rows]

        return await self._run(_list)

    async def insert(self, entity_type: EntityType, record: Dict[str, Any]) -> Dict[str, Any]:
        model = self._model(entity_type)

        def _insert():
            with self.session_factory() as db:
                row = model().apply({k: v for k, v in record.items() if v is not None})
                db.add(row)
                db.commit()
                db.refresh(row)
                return row.to_dict()

        try:
            return await self._run(_insert)
        except KeyError as e:
            raise ValidationError(f"Unknown {EntityType(entity_type).value} field: {e.args[0]}",
                                  field=str(e.args[0])) from e

    async def patch(self, entity_type: EntityType, record_id: str, fields: Dict[str, Any]) -> None:
        model = self._model(entity_type)

        def _patch():
            with self.session_factory() as db:
                row = db.get(model, record_id)
                if row is None:
                    return False
                row.apply(fields)
                db.commit()
                return True

        try:
            found = await self._run(_patch)
        except KeyError as e:
            raise ValidationError(f"Unknown {EntityType(entity_type).value} field: {e.args[0]}",
                                  field=str(e.args[0])) from e
        if not found:
            raise RecordNotFound(EntityType(entity_type).value, record_id)

    async def remove(self, entity_type: EntityType, record_id: str) -> None:
        model = self._model(entity_type)

        def _remove():
            with self.session_factory() as db:
                row = db.get(model, record_id)
                if row is not None:
                    db.delete(row)
                    db.commit()

        await self._run(_remove)

    # ==================== CAPACITY ====================

    async def reserve_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        key = parse_date(travel_date)

        def _reserve():
            with self.session_factory() as db:
                stmt = (
                    update(DailyInventory)
                    .where(
                        DailyInventory.date == key,
                        DailyInventory.is_blocked.is_(False),
                        DailyInventory.booked + pax_count <= DailyInventory.capacity,
                    )
                    .values(booked=DailyInventory.booked + pax_count)
                    .execution_options(synchronize_session=False)
                )
                result = db.execute(stmt)
                db.commit()
                if result.rowcount == 1:
                    slot = db.get(DailyInventory, key, populate_existing=True)
                    return CapacityResult(success=True, available=slot.available if slot else None)

                # Nothing changed: explain why
                slot = db.get(DailyInventory, key)
                if slot is None:
                    return CapacityResult(success=False, error=NOT_CONFIGURED, available=0)
                if slot.is_blocked:
                    return CapacityResult(success=False, error=DATE_BLOCKED, available=0)
                return CapacityResult(success=False, error=CAPACITY_EXHAUSTED, available=slot.available)

        return await self._run(_reserve)

    async def release_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        key = parse_date(travel_date)

        def _release():
            with self.session_factory() as db:
                slot = db.get(DailyInventory, key)
                if slot is None:
                    return CapacityResult(success=False, error=NOT_CONFIGURED)
                clamped = slot.booked < pax_count
                stmt = (
                    update(DailyInventory)
                    .where(DailyInventory.date == key)
                    .values(booked=case(
                        (DailyInventory.booked >= pax_count, DailyInventory.booked - pax_count),
                        else_=0,
                    ))
                    .execution_options(synchronize_session=False)
                )
                db.execute(stmt)
                db.commit()
                slot = db.get(DailyInventory, key, populate_existing=True)
                return CapacityResult(success=True, clamped=clamped, available=slot.available)

        return await self._run(_release)

    async def get_capacity(self, travel_date: date) -> Optional[Dict[str, Any]]:
        key = parse_date(travel_date)

        def _get():
            with self.session_factory() as db:
                slot = db.get(DailyInventory, key)
                return slot.to_dict() if slot else None

        return await self._run(_get)

    async def set_capacity(self, travel_date: date, capacity: int, is_blocked: bool = False) -> Dict[str, Any]:
        key = parse_date(travel_date)

        def _set():
            with self.session_factory() as db:
                slot = db.get(DailyInventory, key)
                if slot is None:
                    slot = DailyInventory(date=key, booked=0)
                    db.add(slot)
                slot.capacity = capacity
                slot.is_blocked = is_blocked
                db.commit()
                return slot.to_dict()

        try:
            return await self._run(_set)
        except RemoteUnavailable as e:
            if isinstance(e.__cause__, IntegrityError):
                raise ValidationError(
                    f"Capacity {capacity} is below the pax already booked on {key}",
                    field='capacity'
                ) from e
            raise
