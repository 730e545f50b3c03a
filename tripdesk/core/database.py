"""
Database Configuration

Supports both SQLite (development) and PostgreSQL (production).
Engines are built on demand so tests and the CLI can point at their own URL.
"""
from datetime import date, datetime
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import Date, DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .clock import parse_date, parse_datetime
from .config import settings

# Base class for models
Base = declarative_base()


def new_id() -> str:
    """Server-side primary key for store records"""
    return uuid.uuid4().hex


class RecordMixin:
    """Plain-dict conversion shared by every store table."""

    @classmethod
    def column_names(cls):
        return [column.name for column in cls.__table__.columns]

    def apply(self, fields: Dict[str, Any]):
        """Copy record fields onto the row, coercing ISO strings for date columns"""
        columns = self.__table__.columns
        for key, value in fields.items():
            if key not in columns:
                raise KeyError(key)
            column_type = columns[key].type
            if isinstance(value, str) and isinstance(column_type, DateTime):
                value = parse_datetime(value)
            elif isinstance(value, str) and isinstance(column_type, Date):
                value = parse_date(value)
            setattr(self, key, value)
        return self

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        out = {}
        for name in self.column_names():
            value = getattr(self, name)
            if isinstance(value, datetime):
                value = parse_datetime(value).isoformat()
            elif isinstance(value, date):
                value = value.isoformat()
            out[name] = value
        return out


def create_db_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Build an engine for the configured (or given) database URL"""
    url = database_url or settings.DATABASE_URL
    echo = settings.DEBUG if echo is None else echo

    if url.startswith("sqlite"):
        if url in ("sqlite://", "sqlite:///:memory:"):
            # In-memory SQLite must share one connection across threads
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=echo
            )
        # Create database directory for file-based SQLite
        db_path = Path(url.replace("sqlite:///", ""))
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo
        )

    # PostgreSQL configuration (for production)
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=echo
    )


def make_session_factory(engine: Engine):
    """Session factory bound to an engine"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_db(engine: Engine):
    """Initialize the database (create all tables)"""
    # Import all models to register them with Base
    from tripdesk.models import (  # noqa: F401
        Lead, Customer, Booking, FollowUp, DailyInventory, AuditLog, Proposal
    )

    Base.metadata.create_all(bind=engine)
