"""
Error taxonomy

Every failure the core reports is a TripDeskError carrying a stable `code`
so the presentation layer (services.messages) can map it to a message
without string matching.
"""
from typing import Any, Dict, List, Optional


class TripDeskError(Exception):
    """Base exception for all controlled TripDesk failures"""
    code = "error"

    def __init__(self, message: str, code: str = None, details: dict = None):
        self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'error': self.message, 'details': self.details}


class ValidationError(TripDeskError):
    """Bad input shape, raised before any remote call"""
    code = "validation_error"

    def __init__(self, message: str, field: str = None, errors: list = None):
        super().__init__(message, details={'field': field, 'errors': errors or []})
        self.field = field


class InvalidTransition(TripDeskError):
    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Lead status cannot change from '{from_status}' to '{to_status}'",
            details={'from': from_status, 'to': to_status}
        )
        self.from_status = from_status
        self.to_status = to_status


class InventoryExhausted(TripDeskError):
    code = "inventory_exhausted"

    def __init__(self, travel_date: str, requested: int, available: Optional[int] = None, reason: str = None):
        message = f"Not enough capacity on {travel_date} for {requested} pax"
        if available is not None:
            message += f" ({available} left)"
        super().__init__(message, details={
            'date': travel_date, 'requested': requested,
            'available': available, 'reason': reason,
        })
        self.travel_date = travel_date
        self.requested = requested
        self.available = available


class InventoryLockFailed(TripDeskError):
    code = "inventory_lock_failed"


class RemoteUnavailable(TripDeskError):
    """Network or service failure on any store call"""
    code = "remote_unavailable"

    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message, details={'status_code': status_code})
        self.status_code = status_code
        self.response = response


class RecordNotFound(TripDeskError):
    code = "not_found"

    def __init__(self, entity_type: str, record_id: str):
        super().__init__(f"{entity_type} record '{record_id}' not found",
                         details={'entity_type': entity_type, 'id': record_id})
        self.entity_type = entity_type
        self.record_id = record_id


class PreconditionFailed(TripDeskError):
    code = "precondition_failed"

    def __init__(self, message: str, missing: List[str] = None):
        super().__init__(message, details={'missing': missing or []})
        self.missing = missing or []


class DuplicateLeadSuspected(TripDeskError):
    """A new lead matches existing ones; the caller must confirm to proceed"""
    code = "duplicate_lead"

    def __init__(self, matches: List[dict]):
        ids = [m.get('id') for m in matches]
        super().__init__(f"Possible duplicate of lead(s): {', '.join(map(str, ids))}",
                         details={'matches': ids})
        self.matches = matches


class ConsistencyWarning(TripDeskError):
    """Reported, never raised: a best-effort step failed after the booking committed"""
    code = "consistency_warning"
