"""
Customer Model

Created lazily when a lead converts and no existing customer matches.
"""
import enum
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin, new_id


class CustomerType(str, enum.Enum):
    """Customer classification"""
    NEW = "New"
    RETURNING = "Returning"
    VIP = "VIP"


class CustomerStatus(str, enum.Enum):
    """Customer status"""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Customer(RecordMixin, Base):
    """Customer profile shared by every lead that resolves to it"""
    __tablename__ = 'customers'

    id = Column(String(36), primary_key=True, default=new_id)

    # ==================== IDENTITY ====================
    name = Column(String(200), nullable=False)
    email = Column(String(120), index=True)
    phone = Column(String(50), index=True)
    location = Column(String(200))

    # ==================== DETAILS ====================
    type = Column(String(20), default=CustomerType.NEW.value)  # CustomerType
    status = Column(String(20), default=CustomerStatus.ACTIVE.value)  # CustomerStatus
    tags = Column(JSON, default=list)

    # ==================== STATISTICS ====================
    bookings_count = Column(Integer, default=0)
    total_spent = Column(Float, default=0)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_active = Column(DateTime(timezone=True))
