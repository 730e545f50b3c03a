"""Core modules: config, database, errors, logging"""
from .config import settings, Settings
from .database import Base, create_db_engine, make_session_factory, init_db
from .logging import configure_logging

__all__ = [
    'settings', 'Settings',
    'Base', 'create_db_engine', 'make_session_factory', 'init_db',
    'configure_logging'
]
