"""
TripDesk composition root

Wires one synchronized collection per entity type and the services on top
of them around a single remote store.
"""
import asyncio
import logging
from typing import Dict

from tripdesk.schemas import (
    AuditEntry, BookingCreate, BookingPatch, CustomerCreate, CustomerPatch,
    FollowUpCreate, FollowUpPatch, LeadCreate, LeadPatch, ProposalCreate, ProposalPatch,
)
from tripdesk.services import (
    AuditTrail, BookingDesk, ConversionWorkflow, CustomerDirectory,
    FollowUpScheduler, InventoryReservation, LeadStateMachine,
)
from tripdesk.store import EntityType, RemoteStore, build_store
from tripdesk.sync import SynchronizedCollection

LOGGER = logging.getLogger(__name__)


class TripDesk:

    def __init__(self, store: RemoteStore = None, strict_transitions: bool = None, performed_by: str = None):
        self.store = store if store is not None else build_store()

        # Collections
        self.leads = SynchronizedCollection(self.store, EntityType.LEADS, LeadCreate, LeadPatch)
        self.customers = SynchronizedCollection(self.store, EntityType.CUSTOMERS, CustomerCreate, CustomerPatch)
        self.bookings = SynchronizedCollection(self.store, EntityType.BOOKINGS, BookingCreate, BookingPatch)
        self.follow_ups = SynchronizedCollection(self.store, EntityType.FOLLOW_UPS, FollowUpCreate, FollowUpPatch)
        self.proposals = SynchronizedCollection(self.store, EntityType.PROPOSALS, ProposalCreate, ProposalPatch)
        self.audit_logs = SynchronizedCollection(self.store, EntityType.AUDIT_LOGS, AuditEntry)

        # Services
        self.audit = AuditTrail(self.audit_logs, performed_by)
        self.inventory = InventoryReservation(self.store)
        self.pipeline = LeadStateMachine(self.leads, self.audit, strict=strict_transitions)
        self.directory = CustomerDirectory(self.customers)
        self.scheduler = FollowUpScheduler(self.follow_ups, self.audit, self.leads)
        self.booking_desk = BookingDesk(self.bookings, self.inventory, self.audit)
        self.conversion = ConversionWorkflow(
            self.pipeline, self.directory, self.bookings, self.inventory, self.audit, self.proposals,
        )

    @property
    def collections(self) -> Dict[EntityType, SynchronizedCollection]:
        return {
            EntityType.LEADS: self.leads,
            EntityType.CUSTOMERS: self.customers,
            EntityType.BOOKINGS: self.bookings,
            EntityType.FOLLOW_UPS: self.follow_ups,
            EntityType.PROPOSALS: self.proposals,
            EntityType.AUDIT_LOGS: self.audit_logs,
        }

    async def load_all(self) -> None:
        """Fill every cache; collections load concurrently"""
        await asyncio.gather(*(c.load() for c in self.collections.values()))
        LOGGER.debug("loaded %s", {t.value: len(c) for t, c in self.collections.items()})
