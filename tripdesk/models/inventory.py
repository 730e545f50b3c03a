"""
Daily Inventory Model

Per-date seat pool shared by every agent session. `booked <= capacity`
holds after every successful reservation; only the store's conditional
UPDATE may move `booked`.
"""
from sqlalchemy import Column, Integer, Float, Boolean, Date, DateTime, CheckConstraint

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin


class DailyInventory(RecordMixin, Base):
    """Capacity counter for one calendar date"""
    __tablename__ = 'daily_inventory'
    __table_args__ = (
        CheckConstraint('booked >= 0', name='ck_daily_inventory_booked_non_negative'),
        CheckConstraint('booked <= capacity', name='ck_daily_inventory_within_capacity'),
    )

    date = Column(Date, primary_key=True)
    capacity = Column(Integer, nullable=False, default=0)
    booked = Column(Integer, nullable=False, default=0)
    price = Column(Float)
    is_blocked = Column(Boolean, nullable=False, default=False)

    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def available(self) -> int:
        return max(0, (self.capacity or 0) - (self.booked or 0))
