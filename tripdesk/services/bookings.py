"""
Booking desk: cancellation with seat release
"""
import logging
from typing import Any, Dict

from tripdesk.core.config import settings
from tripdesk.core.errors import RecordNotFound, TripDeskError, ValidationError
from tripdesk.models.booking import BookingStatus
from tripdesk.sync.collection import SynchronizedCollection
from .audit import MODULE_BOOKINGS, AuditTrail
from .inventory import InventoryReservation

LOGGER = logging.getLogger(__name__)


class BookingDesk:

    def __init__(self, bookings: SynchronizedCollection, inventory: InventoryReservation,
                 audit: AuditTrail = None):
        self.bookings = bookings
        self.inventory = inventory
        self.audit = audit

    async def get(self, booking_id: str) -> Dict[str, Any]:
        await self.bookings.ensure_loaded()
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise RecordNotFound('bookings', booking_id)
        return booking

    async def cancel(self, booking_id: str, reason: str = None, performed_by: str = None) -> Dict[str, Any]:
        """
        Cancel a booking and give its seats back

        Cancelling an already cancelled booking is a no-op, so the seats are
        released at most once per booking. The status flips first (the cache
        shows Cancelled immediately); if the release then fails the previous
        status is restored.
        """
        booking = await self.get(booking_id)
        previous = booking.get('status')
        if previous == BookingStatus.CANCELLED.value:
            return booking
        if previous == BookingStatus.COMPLETED.value:
            raise ValidationError(f"Booking {booking_id} is completed and cannot be cancelled", field='status')

        updated = await self.bookings.update(booking_id, {'status': BookingStatus.CANCELLED})
        try:
            await self.inventory.release(booking['travel_date'], booking.get('pax_count') or 1)
        except TripDeskError:
            LOGGER.warning("seat release for booking %s failed; restoring status %s", booking_id, previous)
            try:
                await self.bookings.update(booking_id, {'status': previous})
            except TripDeskError as e:
                LOGGER.error("booking %s left Cancelled with seats still held: %s", booking_id, e)
            raise

        LOGGER.info("booking %s cancelled", booking_id)
        if self.audit:
            details = f"{booking.get('title')} on {booking.get('travel_date')} ({booking.get('pax_count')} pax)"
            if reason:
                details += f": {reason}"
            await self.audit.record_quietly('Booking Cancelled', MODULE_BOOKINGS, details,
                                            performed_by=performed_by or settings.DEFAULT_PERFORMED_BY)
        return updated
