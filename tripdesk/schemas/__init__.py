"""
Validation schemas: one create model and one patch model per entity
"""
from .base import RecordModel, PatchModel, coerce
from .lead import LeadCreate, LeadPatch, LeadLogEntry
from .customer import CustomerCreate, CustomerPatch
from .booking import BookingCreate, BookingPatch
from .follow_up import FollowUpCreate, FollowUpPatch
from .audit import AuditEntry
from .proposal import ProposalCreate, ProposalPatch, ProposalOption

__all__ = [
    'RecordModel', 'PatchModel', 'coerce',
    'LeadCreate', 'LeadPatch', 'LeadLogEntry',
    'CustomerCreate', 'CustomerPatch',
    'BookingCreate', 'BookingPatch',
    'FollowUpCreate', 'FollowUpPatch',
    'AuditEntry',
    'ProposalCreate', 'ProposalPatch', 'ProposalOption'
]
