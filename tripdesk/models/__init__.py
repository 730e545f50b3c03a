"""
Store tables for TripDesk

Includes:
- Lead: Incoming travel inquiries and their activity log
- Customer: Customer profiles and aggregates
- Booking: Confirmed bookings
- FollowUp: Agent reminders tied to leads
- DailyInventory: Per-date seat capacity
- AuditLog: Append-only audit trail
- Proposal: Priced options offered to a lead
"""
from .lead import Lead, LeadStatus, LeadPriority, LeadLogType
from .customer import Customer, CustomerType, CustomerStatus
from .booking import Booking, BookingType, BookingStatus, PaymentStatus
from .follow_up import FollowUp, FollowUpType, FollowUpStatus, FollowUpPriority
from .inventory import DailyInventory
from .audit import AuditLog, AuditSeverity
from .proposal import Proposal, ProposalStatus

__all__ = [
    'Lead', 'LeadStatus', 'LeadPriority', 'LeadLogType',
    'Customer', 'CustomerType', 'CustomerStatus',
    'Booking', 'BookingType', 'BookingStatus', 'PaymentStatus',
    'FollowUp', 'FollowUpType', 'FollowUpStatus', 'FollowUpPriority',
    'DailyInventory',
    'AuditLog', 'AuditSeverity',
    'Proposal', 'ProposalStatus'
]
