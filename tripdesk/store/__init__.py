"""
Remote store package: the contract consumed by the core plus its backends
"""
from .base import (
    RemoteStore, EntityType, CapacityResult,
    CAPACITY_EXHAUSTED, DATE_BLOCKED, NOT_CONFIGURED,
)
from .memory import MemoryStore
from .sql import SqlStore
from .rest import RestStore


def build_store(backend: str = None) -> RemoteStore:
    """Store selected by STORE_BACKEND (sql, rest or memory)"""
    from tripdesk.core.config import settings

    backend = (backend or settings.STORE_BACKEND).strip().lower()
    if backend == 'sql':
        return SqlStore()
    if backend == 'rest':
        return RestStore()
    if backend == 'memory':
        return MemoryStore()
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


__all__ = [
    'RemoteStore', 'EntityType', 'CapacityResult',
    'CAPACITY_EXHAUSTED', 'DATE_BLOCKED', 'NOT_CONFIGURED',
    'MemoryStore', 'SqlStore', 'RestStore', 'build_store'
]
