"""
Synchronized collection

Locally cached, ordered mirror of one store collection that applies
mutations optimistically:

- create/update/delete change the cache before the store call resolves
- each mutation snapshots the cache at issue time; on failure exactly that
  snapshot is restored and the typed error is re-raised (no retry)
- on success the cache is refreshed from the store, once no other mutation
  on the collection is still in flight
- concurrent load() calls share one fetch; a load overtaken by a newer load
  or by a mutation discards its result instead of overwriting newer state
"""
import asyncio
import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel

from tripdesk.core.database import new_id
from tripdesk.core.errors import RemoteUnavailable, TripDeskError
from tripdesk.schemas.base import PatchModel, RecordModel, coerce
from tripdesk.store.base import EntityType, RemoteStore

LOGGER = logging.getLogger(__name__)

Record = Dict[str, Any]
Listener = Callable[[List[Record]], None]


class SynchronizedCollection:

    def __init__(
        self,
        store: RemoteStore,
        entity_type: EntityType,
        create_schema: Type[RecordModel] = None,
        patch_schema: Type[PatchModel] = None,
    ):
        self.store = store
        self.entity_type = EntityType(entity_type)
        self.create_schema = create_schema
        self.patch_schema = patch_schema

        self._items: List[Record] = []
        self._listeners: List[Listener] = []

        # Every load and every mutation bumps the generation; a fetch only
        # applies its result if its generation is still the latest.
        self._generation = 0
        self._load_task: Optional[asyncio.Future] = None
        self._load_generation = -1

        self._pending = 0
        self.loaded = False
        self.stale = False

    def __repr__(self) -> str:
        return f"<SynchronizedCollection {self.entity_type.value} items={len(self._items)} pending={self._pending}>"

    # ==================== READ ====================

    @property
    def items(self) -> List[Record]:
        """Copy of the cached records, newest first"""
        return copy.deepcopy(self._items)

    @property
    def pending(self) -> int:
        return self._pending

    def get(self, record_id: str) -> Optional[Record]:
        for record in self._items:
            if record.get('id') == record_id:
                return copy.deepcopy(record)
        return None

    def find(self, predicate: Callable[[Record], bool]) -> List[Record]:
        return [copy.deepcopy(r) for r in self._items if predicate(r)]

    def __len__(self) -> int:
        return len(self._items)

    # ==================== OBSERVE ====================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(items)` after every cache change; returns an unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_items(self, items: List[Record]):
        self._items = items
        snapshot = self.items
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                LOGGER.exception("%s listener %r failed", self.entity_type.value, listener)

    # ==================== LOAD ====================

    async def load(self) -> List[Record]:
        """Fetch the full collection; joins a fetch that is already in flight"""
        task = self._load_task
        if task is None or task.done() or self._load_generation != self._generation:
            task = self._start_load()
        return await asyncio.shield(task)

    async def refresh(self) -> List[Record]:
        """Fetch again even if a load is in flight; the older load's result is discarded"""
        return await asyncio.shield(self._start_load())

    async def ensure_loaded(self) -> List[Record]:
        if not self.loaded:
            return await self.load()
        return self.items

    def _start_load(self) -> asyncio.Future:
        self._generation += 1
        generation = self._generation
        task = asyncio.ensure_future(self._fetch(generation))
        # Results of superseded loads may go unawaited
        task.add_done_callback(_consume_exception)
        self._load_task = task
        self._load_generation = generation
        return task

    async def _fetch(self, generation: int) -> List[Record]:
        records = await self.store.list(self.entity_type)
        if generation != self._generation:
            LOGGER.debug("discarding stale %s load (generation %s, current %s)",
                         self.entity_type.value, generation, self._generation)
            return self.items
        self.loaded = True
        self.stale = False
        self._set_items([copy.deepcopy(r) for r in records])
        return self.items

    # ==================== MUTATE ====================

    async def create(self, entity: Union[Record, BaseModel]) -> Record:
        """Insert at the head of the cache, then persist"""
        record = self._validate_create(entity)
        record.setdefault('id', new_id())

        snapshot = self._begin_mutation()
        self._set_items([copy.deepcopy(record)] + [r for r in self._items if r.get('id') != record['id']])
        try:
            saved = await self.store.insert(self.entity_type, record)
        except (Exception, asyncio.CancelledError) as exc:
            raise self._rollback(snapshot, 'create', exc)

        self._pending -= 1
        self._replace(record['id'], saved)
        await self._refresh_after_mutation()
        return self.get(saved.get('id', record['id'])) or copy.deepcopy(saved)

    async def update(self, record_id: str, patch: Union[Record, BaseModel]) -> Optional[Record]:
        """Merge `patch` into the cached record, then persist"""
        changes = self._validate_patch(patch)
        if not changes:
            return self.get(record_id)

        snapshot = self._begin_mutation()
        self._set_items([
            {**r, **copy.deepcopy(changes)} if r.get('id') == record_id else r
            for r in self._items
        ])
        try:
            await self.store.patch(self.entity_type, record_id, changes)
        except (Exception, asyncio.CancelledError) as exc:
            raise self._rollback(snapshot, 'update', exc)

        self._pending -= 1
        optimistic = self.get(record_id)
        await self._refresh_after_mutation()
        return self.get(record_id) or optimistic

    async def delete(self, record_id: str) -> None:
        """Drop from the cache, then remove from the store"""
        snapshot = self._begin_mutation()
        self._set_items([r for r in self._items if r.get('id') != record_id])
        try:
            await self.store.remove(self.entity_type, record_id)
        except (Exception, asyncio.CancelledError) as exc:
            raise self._rollback(snapshot, 'delete', exc)

        self._pending -= 1
        await self._refresh_after_mutation()

    # ==================== BOOKKEEPING ====================

    def _validate_create(self, entity) -> Record:
        if self.create_schema is not None:
            return coerce(self.create_schema, entity).to_record()
        if isinstance(entity, BaseModel):
            return entity.model_dump(mode='json', exclude_none=True)
        return copy.deepcopy(dict(entity))

    def _validate_patch(self, patch) -> Record:
        if self.patch_schema is not None:
            return coerce(self.patch_schema, patch).changes()
        if isinstance(patch, BaseModel):
            return patch.model_dump(mode='json', exclude_unset=True)
        return copy.deepcopy(dict(patch))

    def _begin_mutation(self) -> List[Record]:
        """Stop any in-flight load from landing, then snapshot the cache"""
        if self._load_task is not None and not self._load_task.done():
            self._generation += 1
            self.stale = True
            LOGGER.debug("%s mutation supersedes in-flight load", self.entity_type.value)
        self._pending += 1
        return copy.deepcopy(self._items)

    def _rollback(self, snapshot: List[Record], operation: str, exc: BaseException) -> BaseException:
        self._pending -= 1
        LOGGER.warning("%s %s failed, restoring cache snapshot: %s", self.entity_type.value, operation, exc)
        self._set_items(snapshot)
        if isinstance(exc, (TripDeskError, asyncio.CancelledError)):
            return exc
        error = RemoteUnavailable(f"{self.entity_type.value} {operation} failed: {exc}")
        error.__cause__ = exc
        return error

    def _replace(self, record_id: str, saved: Record):
        """Swap the optimistic entry for the store's copy (server-assigned fields)"""
        if not saved:
            return
        self._set_items([
            copy.deepcopy(saved) if r.get('id') == record_id else r
            for r in self._items
        ])

    async def _refresh_after_mutation(self):
        if self._pending > 0:
            # Reloading now would drop the other mutations' optimistic effects
            self.stale = True
            return
        try:
            await self.refresh()
        except TripDeskError as e:
            self.stale = True
            LOGGER.warning("%s refresh after mutation failed: %s", self.entity_type.value, e)


def _consume_exception(task: asyncio.Future):
    if not task.cancelled():
        task.exception()
