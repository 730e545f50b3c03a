"""
Business services built on synchronized collections and the remote store
"""
from .audit import AuditTrail, MODULE_LEADS, MODULE_BOOKINGS, MODULE_CUSTOMERS, MODULE_FOLLOW_UPS
from .lead_pipeline import (
    LeadStateMachine, TRANSITIONS, can_transition, validate_transition,
    find_duplicates, normalize_phone, normalize_email,
)
from .inventory import InventoryReservation
from .customers import CustomerDirectory
from .conversion import ConversionWorkflow, ConversionResult, seats_for
from .follow_ups import FollowUpScheduler
from .bookings import BookingDesk
from .messages import describe_error, error_payload

__all__ = [
    'AuditTrail', 'MODULE_LEADS', 'MODULE_BOOKINGS', 'MODULE_CUSTOMERS', 'MODULE_FOLLOW_UPS',
    'LeadStateMachine', 'TRANSITIONS', 'can_transition', 'validate_transition',
    'find_duplicates', 'normalize_phone', 'normalize_email',
    'InventoryReservation',
    'CustomerDirectory',
    'ConversionWorkflow', 'ConversionResult', 'seats_for',
    'FollowUpScheduler',
    'BookingDesk',
    'describe_error', 'error_payload'
]
