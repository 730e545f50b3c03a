"""
Lead -> booking conversion

Steps, awaited one after another:

1. Preconditions (no side effects on failure)
2. Resolve the customer: link by email/phone or create one
3. Reserve seats for the travel date
4. Create the booking (Confirmed, Unpaid)
5. Mark the lead Converted
6. Log entry on the lead, customer aggregates, proposal status, audit entry

A failure in steps 2-4 undoes the completed steps in reverse order and
re-raises. From step 5 on the booking stands: failures become
ConsistencyWarnings on the result (step 5 also writes a Warning audit entry).
"""
import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from tripdesk.core.clock import parse_date
from tripdesk.core.config import settings
from tripdesk.core.errors import (
    ConsistencyWarning, PreconditionFailed, RecordNotFound, TripDeskError, ValidationError,
)
from tripdesk.models.audit import AuditSeverity
from tripdesk.models.booking import BookingStatus, BookingType, PaymentStatus
from tripdesk.models.lead import LeadLogType, LeadStatus
from tripdesk.models.proposal import ProposalStatus
from tripdesk.schemas.booking import BookingCreate
from tripdesk.sync.collection import SynchronizedCollection
from .audit import MODULE_BOOKINGS, AuditTrail
from .customers import CustomerDirectory
from .inventory import InventoryReservation
from .lead_pipeline import LeadStateMachine

LOGGER = logging.getLogger(__name__)

Undo = Tuple[str, Callable[[], Awaitable[Any]]]


def seats_for(lead: Dict[str, Any]) -> Optional[int]:
    """Seats a lead needs: adults + children (infants ride on a lap)"""
    adults, children = lead.get('pax_adult'), lead.get('pax_child')
    if adults is not None or children is not None:
        seats = (adults or 0) + (children or 0)
        if seats > 0:
            return seats
    match = re.match(r'\s*(\d+)', lead.get('travelers') or '')
    if match and int(match.group(1)) > 0:
        return int(match.group(1))
    return None


@dataclass
class ConversionResult:
    """Outcome of a committed conversion"""
    booking_id: str
    booking: Dict[str, Any]
    lead_id: str
    customer_id: str
    customer_created: bool
    warnings: List[ConsistencyWarning] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            'booking_id': self.booking_id,
            'lead_id': self.lead_id,
            'customer_id': self.customer_id,
            'customer_created': self.customer_created,
            'warnings': [w.message for w in self.warnings],
        }


@dataclass
class _Plan:
    lead: Dict[str, Any]
    title: str
    travel_date: date
    pax_count: int
    amount: float
    details: Optional[str] = None
    proposal: Optional[Dict[str, Any]] = None
    option: Optional[Dict[str, Any]] = None


class ConversionWorkflow:

    def __init__(
        self,
        pipeline: LeadStateMachine,
        customers: CustomerDirectory,
        bookings: SynchronizedCollection,
        inventory: InventoryReservation,
        audit: AuditTrail,
        proposals: SynchronizedCollection = None,
    ):
        self.pipeline = pipeline
        self.customers = customers
        self.bookings = bookings
        self.inventory = inventory
        self.audit = audit
        self.proposals = proposals

    async def convert(
        self,
        lead_id: str,
        proposal_id: str = None,
        option_id: str = None,
        pax_count: int = None,
        travel_date=None,
        amount: float = None,
        performed_by: str = None,
    ) -> ConversionResult:
        actor = performed_by or settings.DEFAULT_PERFORMED_BY

        # 1. Preconditions
        plan = await self._plan(lead_id, proposal_id, option_id, pax_count, travel_date, amount)
        lead = plan.lead

        undo: List[Undo] = []
        try:
            # 2. Customer
            customer, created = await self.customers.resolve(
                name=lead['name'], email=lead.get('email'), phone=lead.get('phone'),
                location=lead.get('location'),
            )
            if created:
                undo.append(('remove new customer', lambda: self.customers.remove(customer['id'])))

            # 3. Seats
            await self.inventory.reserve(plan.travel_date, plan.pax_count)
            undo.append(('release seats', lambda: self.inventory.release(
                plan.travel_date, plan.pax_count, compensating=True)))

            # 4. Booking
            booking = await self.bookings.create(self._booking(plan, customer))
        except (Exception, asyncio.CancelledError) as exc:
            LOGGER.warning("conversion of lead %s failed (%s); undoing %d step(s)",
                           lead_id, getattr(exc, 'code', type(exc).__name__), len(undo))
            await self._compensate(undo)
            raise

        warnings: List[ConsistencyWarning] = []
        path = 'customer created' if created else 'customer linked'

        # 5. Lead status
        try:
            await self.pipeline.transition(
                lead_id, LeadStatus.CONVERTED,
                changes={'customer_id': customer['id']},
                performed_by=actor,
            )
        except TripDeskError as exc:
            warning = ConsistencyWarning(
                f"Booking {booking['id']} was created but lead {lead_id} "
                f"could not be marked Converted: {exc.message}",
                details={'booking_id': booking['id'], 'lead_id': lead_id, 'cause': exc.code},
            )
            LOGGER.warning(warning.message)
            warnings.append(warning)
            await self.audit.record_quietly(
                'Conversion Inconsistency', MODULE_BOOKINGS, warning.message,
                severity=AuditSeverity.WARNING, performed_by=actor,
            )

        # 6. Bookkeeping
        await self._best_effort(warnings, 'lead log entry', lambda: self.pipeline.append_log(
            lead_id, f"Converted to booking {booking['id']} ({path})", LeadLogType.SYSTEM))
        await self._best_effort(warnings, 'customer totals', lambda: self.customers.record_booking(
            customer['id'], plan.amount))
        if plan.proposal is not None and self.proposals is not None:
            await self._best_effort(warnings, 'proposal status', lambda: self.proposals.update(
                plan.proposal['id'], {'status': ProposalStatus.ACCEPTED}))
        await self._best_effort(warnings, 'audit entry', lambda: self.audit.record(
            'Lead Converted', MODULE_BOOKINGS,
            f"Lead {lead['name']} ({lead_id}) converted to booking {booking['id']} "
            f"'{plan.title}' on {plan.travel_date.isoformat()} for {plan.pax_count} pax; "
            f"{path} {customer['id']}",
            performed_by=actor,
        ))

        LOGGER.info("lead %s converted to booking %s (%s)", lead_id, booking['id'], path)
        return ConversionResult(
            booking_id=booking['id'],
            booking=booking,
            lead_id=lead_id,
            customer_id=customer['id'],
            customer_created=created,
            warnings=warnings,
        )

    # ==================== STEPS ====================

    async def _plan(self, lead_id, proposal_id, option_id, pax_count, travel_date, amount) -> _Plan:
        try:
            lead = await self.pipeline.get(lead_id)
        except RecordNotFound:
            raise PreconditionFailed(f"Lead {lead_id} does not exist", missing=['lead'])
        if lead.get('status') == LeadStatus.CONVERTED.value:
            raise PreconditionFailed(f"Lead {lead_id} is already converted")

        if pax_count is not None and (not isinstance(pax_count, int) or pax_count <= 0):
            raise ValidationError(f"Pax count must be a positive integer, got {pax_count!r}", field='pax_count')

        proposal, option = None, None
        if proposal_id:
            proposal, option = await self._proposal(lead_id, proposal_id, option_id)

        missing = []
        if not (lead.get('email') or lead.get('phone')):
            missing.append('contact')

        if proposal is not None:
            title = f"{proposal['title']} - {option['name']}" if option else proposal['title']
        else:
            title = lead.get('destination')
        if not title:
            missing.append('destination')

        try:
            day = parse_date(travel_date or lead.get('start_date'))
        except ValueError:
            raise ValidationError(f"Invalid travel date: {travel_date!r}", field='travel_date')
        if day is None:
            missing.append('travel_date')

        if amount is None:
            amount = option['price'] if option else lead.get('potential_value')
        if not amount or amount <= 0:
            missing.append('amount')

        seats = pax_count or seats_for(lead)
        if not seats:
            missing.append('pax_count')

        if missing:
            raise PreconditionFailed(
                f"Lead {lead_id} cannot be converted, missing: {', '.join(missing)}",
                missing=missing,
            )

        details = None
        if option:
            hotels = ', '.join(option.get('hotels') or [])
            details = f"{option['name']} package" + (f"; hotels: {hotels}" if hotels else '')

        return _Plan(lead=lead, title=title, travel_date=day, pax_count=seats, amount=float(amount),
                     details=details, proposal=proposal, option=option)

    async def _proposal(self, lead_id, proposal_id, option_id):
        if self.proposals is None:
            raise PreconditionFailed("Proposals are not available", missing=['proposal'])
        await self.proposals.ensure_loaded()
        proposal = self.proposals.get(proposal_id)
        if proposal is None:
            raise PreconditionFailed(f"Proposal {proposal_id} does not exist", missing=['proposal'])
        if proposal.get('lead_id') != lead_id:
            raise PreconditionFailed(f"Proposal {proposal_id} belongs to another lead", missing=['proposal'])

        options = proposal.get('options') or []
        if option_id:
            for option in options:
                if option_id in (option.get('id'), option.get('name')):
                    return proposal, option
            raise PreconditionFailed(f"Proposal {proposal_id} has no option {option_id!r}", missing=['option'])
        if len(options) == 1:
            return proposal, options[0]
        if options:
            raise PreconditionFailed(f"Proposal {proposal_id} has {len(options)} options; choose one",
                                     missing=['option'])
        return proposal, None

    @staticmethod
    def _booking(plan: _Plan, customer: Dict[str, Any]) -> BookingCreate:
        lead = plan.lead
        service = (lead.get('service_type') or '').strip().title()
        return BookingCreate(
            type=service if service in {t.value for t in BookingType} else BookingType.TOUR,
            customer_id=customer['id'],
            customer_name=customer.get('name') or lead['name'],
            email=lead.get('email'),
            phone=lead.get('phone'),
            title=plan.title,
            travel_date=plan.travel_date,
            pax_count=plan.pax_count,
            guests=lead.get('travelers'),
            amount=plan.amount,
            details=plan.details,
            status=BookingStatus.CONFIRMED,
            payment_status=PaymentStatus.UNPAID,
            lead_id=lead['id'],
            proposal_id=plan.proposal['id'] if plan.proposal else None,
        )

    @staticmethod
    async def _compensate(undo: List[Undo]) -> None:
        for description, action in reversed(undo):
            try:
                await action()
            except Exception as e:
                LOGGER.error("compensation step '%s' failed: %s", description, e)

    @staticmethod
    async def _best_effort(warnings: List[ConsistencyWarning], description: str,
                           action: Callable[[], Awaitable[Any]]) -> None:
        try:
            await action()
        except TripDeskError as e:
            LOGGER.warning("post-booking step '%s' failed: %s", description, e)
            warnings.append(ConsistencyWarning(f"{description} not updated: {e.message}",
                                               details={'step': description, 'cause': e.code}))
