"""
TripDesk - Lead lifecycle and booking conversion core

The part of the travel agency CRM with real invariants:
- Optimistic, rollback-safe caches of leads, bookings and customers
- Lead status state machine and duplicate detection
- Atomic per-date inventory reservation with compensating release
- Lead/proposal -> booking conversion with audit trail
- Follow-up agenda ranking
"""

__version__ = "1.0.0"
