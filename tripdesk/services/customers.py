"""
Customer directory: matching, lazy creation and booking aggregates
"""
import logging
from typing import Any, Dict, Optional, Tuple

from tripdesk.core.clock import utcnow
from tripdesk.core.errors import RecordNotFound
from tripdesk.models.customer import CustomerType
from tripdesk.schemas.customer import CustomerCreate
from tripdesk.sync.collection import SynchronizedCollection
from .lead_pipeline import normalize_email, normalize_phone

LOGGER = logging.getLogger(__name__)


class CustomerDirectory:

    def __init__(self, customers: SynchronizedCollection):
        self.customers = customers

    async def match(self, email: str = None, phone: str = None) -> Optional[Dict[str, Any]]:
        """Existing customer by case-insensitive email, then by phone digits"""
        await self.customers.ensure_loaded()
        email_key = normalize_email(email)
        if email_key:
            for customer in self.customers.items:
                if normalize_email(customer.get('email')) == email_key:
                    return customer
        phone_key = normalize_phone(phone)
        if phone_key:
            for customer in self.customers.items:
                if normalize_phone(customer.get('phone')) == phone_key:
                    return customer
        return None

    async def resolve(self, name: str, email: str = None, phone: str = None,
                      location: str = None) -> Tuple[Dict[str, Any], bool]:
        """Return (customer, created)"""
        existing = await self.match(email, phone)
        if existing is not None:
            LOGGER.debug("linked existing customer %s", existing['id'])
            return existing, False

        created = await self.customers.create(CustomerCreate(
            name=name,
            email=email,
            phone=phone,
            location=location,
            type=CustomerType.NEW,
        ))
        LOGGER.info("created customer %s (%s)", created['id'], name)
        return created, True

    async def record_booking(self, customer_id: str, amount: float) -> Dict[str, Any]:
        await self.customers.ensure_loaded()
        customer = self.customers.get(customer_id)
        if customer is None:
            raise RecordNotFound('customers', customer_id)

        count = (customer.get('bookings_count') or 0) + 1
        patch = {
            'bookings_count': count,
            'total_spent': round((customer.get('total_spent') or 0) + (amount or 0), 2),
            'last_active': utcnow(),
        }
        if customer.get('type') == CustomerType.NEW.value and count > 1:
            patch['type'] = CustomerType.RETURNING
        return await self.customers.update(customer_id, patch)

    async def remove(self, customer_id: str) -> None:
        await self.customers.delete(customer_id)
