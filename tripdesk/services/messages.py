"""
Presentation of core errors: maps an error to a user-facing message.

The core never decides how a failure is shown; callers (CLI, UI) turn
errors into payloads here.
"""
import logging
import re
from typing import Any, Dict

from tripdesk.core.errors import TripDeskError

LOGGER = logging.getLogger(__name__)

MESSAGES = {
    'validation_error': "Please check the input: {message}",
    'invalid_transition': "A lead cannot move from {from} to {to}.",
    'inventory_exhausted': ("Not enough seats on {date}: {requested} requested, {available} left. "
                            "Pick another date or reduce the group size."),
    'inventory_lock_failed': "The seat inventory could not be reached. Please try again.",
    'remote_unavailable': "The server could not be reached. Please try again.",
    'not_found': "This {entity_type} record no longer exists.",
    'precondition_failed': "This lead cannot be converted yet: {message}",
    'duplicate_lead': "This lead looks like an existing one. Confirm to save it anyway.",
    'consistency_warning': "The booking was saved, but related records need attention: {message}",
}

# Reasons the store gives for refusing seats, worded for the agent
CAPACITY_REASONS = {
    'date_blocked': "{date} is closed for bookings. Pick another date.",
    'not_configured': "No seats have been opened for {date}. Pick another date.",
}

RETRYABLE = {'inventory_lock_failed', 'remote_unavailable'}


def _slugify_error_code(message: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "_", (message or "").strip().lower()).strip("_")
    return base[:64] if base else "error"


def _render(template: str, **values: Any) -> str:
    try:
        return template.format(**values)
    except (KeyError, IndexError):
        LOGGER.debug("message template %r missing values", template)
        return values.get('message') or template


def describe_error(exc: BaseException) -> Dict[str, Any]:
    """Return {code, message, retryable} for any exception"""
    if not isinstance(exc, TripDeskError):
        return {'code': _slugify_error_code(type(exc).__name__), 'message': str(exc), 'retryable': False}

    values = {k: v for k, v in exc.details.items() if v is not None}
    values['message'] = exc.message
    template = MESSAGES.get(exc.code, "{message}")
    if exc.code == 'inventory_exhausted':
        template = CAPACITY_REASONS.get(exc.details.get('reason'), template)
        if exc.details.get('available') is None:
            values['available'] = 0
    elif exc.code == 'precondition_failed' and exc.details.get('missing'):
        values['message'] = f"missing {', '.join(exc.details['missing'])}"
    elif exc.code == 'not_found':
        values['entity_type'] = str(values.get('entity_type', 'record')).rstrip('s').replace('_', '-')

    return {
        'code': exc.code,
        'message': _render(template, **values),
        'retryable': exc.code in RETRYABLE,
    }


def error_payload(exc: BaseException) -> Dict[str, Any]:
    """API-style failure payload: {success, code, error, retryable, details}"""
    described = describe_error(exc)
    return {
        'success': False,
        'code': described['code'],
        'error': described['message'],
        'retryable': described['retryable'],
        'details': exc.details if isinstance(exc, TripDeskError) else {},
    }
