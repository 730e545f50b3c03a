"""
Booking Model

Created exactly once per successful conversion; independent of the lead afterwards.
"""
import enum
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin, new_id


class BookingType(str, enum.Enum):
    TOUR = "Tour"
    HOTEL = "Hotel"
    CAR = "Car"
    BUS = "Bus"


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class PaymentStatus(str, enum.Enum):
    PAID = "Paid"
    UNPAID = "Unpaid"
    DEPOSIT = "Deposit"
    REFUNDED = "Refunded"


class Booking(RecordMixin, Base):
    """Confirmed trip booking"""
    __tablename__ = 'bookings'

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(String(20), default=BookingType.TOUR.value)  # BookingType

    # ==================== CUSTOMER ====================
    customer_id = Column(String(36), index=True)
    customer_name = Column(String(200))  # Kept for display/history
    email = Column(String(120))
    phone = Column(String(50))

    # ==================== TRIP ====================
    title = Column(String(300), nullable=False)
    travel_date = Column(Date, nullable=False, index=True)
    pax_count = Column(Integer, default=1)
    guests = Column(String(100))
    amount = Column(Float, default=0)
    details = Column(Text)

    # ==================== STATE ====================
    status = Column(String(20), default=BookingStatus.PENDING.value)  # BookingStatus
    payment_status = Column(String(20), default=PaymentStatus.UNPAID.value)  # PaymentStatus

    # ==================== ORIGIN ====================
    lead_id = Column(String(36), index=True)
    proposal_id = Column(String(36))
    package_id = Column(String(36))

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
