"""
Hosted Store API Client

PostgREST-style REST interface (the shape Supabase exposes):
- GET    /{table}?select=*&order=created_at.desc
- POST   /{table}                    (Prefer: return=representation)
- PATCH  /{table}?id=eq.{id}         (empty representation -> not found)
- DELETE /{table}?id=eq.{id}
- POST   /rpc/reserve_capacity       {"p_date", "p_pax"}
- POST   /rpc/release_capacity       {"p_date", "p_pax"}

Authentication: API key sent as both `apikey` and Bearer token.
"""
import asyncio
import json
import logging
import random
import time
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from tripdesk.core.clock import parse_date
from tripdesk.core.config import settings
from tripdesk.core.errors import RecordNotFound, RemoteUnavailable, ValidationError
from .base import CapacityResult, EntityType, RemoteStore

LOGGER = logging.getLogger(__name__)

_ORDER_FIELD = {EntityType.AUDIT_LOGS: 'timestamp'}
_IDEMPOTENT_METHODS = {'GET', 'PATCH', 'DELETE'}


class RestStore(RemoteStore):
    """
    Hosted store client

    Handles authentication headers, retries and error normalisation for all
    requests to the hosted relational store.
    """

    def __init__(self, base_url: str = None, api_key: str = None,
                 timeout: int = None, max_retries: int = None, session: requests.Session = None):
        """
        Initialize the store client

        Args:
            base_url: REST root, e.g. https://<project>.supabase.co/rest/v1 (uses env if not provided)
            api_key: Service or anon key (uses env if not provided)
            timeout: Per-request timeout in seconds
            max_retries: Retries for transport errors and 5xx gateway errors
        """
        base_url = base_url or settings.store_api_url
        if not base_url:
            raise ValueError("STORE_API_URL is required for the rest store backend")
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key if api_key is not None else settings.STORE_API_KEY
        self.timeout = timeout or settings.STORE_REQUEST_TIMEOUT
        self.max_retries = settings.STORE_MAX_RETRIES if max_retries is None else max_retries

        # Session setup
        self.session = session or requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })
        if self.api_key:
            self.session.headers.update({
                'apikey': self.api_key,
                'Authorization': f'Bearer {self.api_key}',
            })

    # ==================== REQUEST HANDLER ====================

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        params: dict = None,
        headers: dict = None,
        idempotent: bool = None
    ) -> Any:
        """
        Make an API request with retry logic

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: Path below the base URL
            data: JSON body
            params: Query parameters
            headers: Extra headers for this request
            idempotent: Whether the call may be resent after a transport error
                or gateway failure. Defaults to True for GET, PATCH and DELETE;
                inserts and RPCs are sent once.

        Returns:
            Decoded JSON body (None for empty responses)
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        if idempotent is None:
            idempotent = method.upper() in _IDEMPOTENT_METHODS
        retries = self.max_retries if idempotent else 0

        attempt = 0
        while True:
            try:
                LOGGER.debug("%s %s params=%s", method, url, params)
                response = self.session.request(
                    method=method,
                    url=url,
                    json=data,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                if attempt < retries:
                    wait_time = 2 ** attempt  # Exponential backoff
                    LOGGER.warning("Request failed. Retrying in %ss... (%s/%s)", wait_time, attempt + 1, retries)
                    time.sleep(wait_time)
                    attempt += 1
                    continue
                raise RemoteUnavailable(f"{method} {endpoint} failed after {attempt + 1} attempt(s): {e}") from e

            # Handle rate limiting (a 429 was not processed, so any method resends)
            if response.status_code == 429 and attempt < self.max_retries:
                retry_after = int(response.headers.get('Retry-After', 1))
                LOGGER.warning("Rate limited. Waiting %s seconds...", retry_after)
                time.sleep(retry_after)
                attempt += 1
                continue

            # Retry transient upstream errors
            if response.status_code in (502, 503, 504) and attempt < retries:
                wait_time = 2 ** attempt + random.uniform(0, 0.25)
                LOGGER.warning("Upstream %s; retrying in %.2fs", response.status_code, wait_time)
                time.sleep(wait_time)
                attempt += 1
                continue

            # Parse response
            response_data = None
            if response.text:
                try:
                    response_data = response.json()
                except (json.JSONDecodeError, ValueError):
                    raw_text = response.text.strip()
                    response_data = {'raw': raw_text[:500]}

            if not (200 <= response.status_code < 300):
                error_msg = None
                if isinstance(response_data, dict):
                    error_msg = response_data.get('message') or response_data.get('error') or response_data.get('raw')
                error_msg = error_msg or f'HTTP {response.status_code}'
                if response.status_code in (400, 422):
                    raise ValidationError(f"Store rejected request: {error_msg}")
                raise RemoteUnavailable(
                    error_msg,
                    status_code=response.status_code,
                    response=response_data if isinstance(response_data, dict) else None
                )

            return response_data

    async def _call(self, method: str, endpoint: str, **kwargs) -> Any:
        return await asyncio.to_thread(self._make_request, method, endpoint, **kwargs)

    # ==================== RECORDS ====================

    async def list(self, entity_type: EntityType) -> List[Dict[str, Any]]:
        entity_type = EntityType(entity_type)
        order = _ORDER_FIELD.get(entity_type, 'created_at')
        rows = await self._call('GET', entity_type.value, params={'select': '*', 'order': f'{order}.desc'})
        return rows or []

    async def insert(self, entity_type: EntityType, record: Dict[str, Any]) -> Dict[str, Any]:
        entity_type = EntityType(entity_type)
        rows = await self._call(
            'POST', entity_type.value,
            data={k: v for k, v in record.items() if v is not None},
            headers={'Prefer': 'return=representation'}
        )
        if isinstance(rows, list):
            return rows[0] if rows else dict(record)
        return rows or dict(record)

    async def patch(self, entity_type: EntityType, record_id: str, fields: Dict[str, Any]) -> None:
        entity_type = EntityType(entity_type)
        rows = await self._call(
            'PATCH', entity_type.value,
            data=fields,
            params={'id': f'eq.{record_id}'},
            headers={'Prefer': 'return=representation'}
        )
        if not rows:
            raise RecordNotFound(entity_type.value, record_id)

    async def remove(self, entity_type: EntityType, record_id: str) -> None:
        entity_type = EntityType(entity_type)
        await self._call('DELETE', entity_type.value, params={'id': f'eq.{record_id}'})

    # ==================== CAPACITY ====================

    @staticmethod
    def _capacity_result(payload: Any) -> CapacityResult:
        # RPCs return {"success": bool, "error": str|null, ...} (possibly wrapped in a list)
        if isinstance(payload, list):
            payload = payload[0] if payload else {}
        if not isinstance(payload, dict) or 'success' not in payload:
            raise RemoteUnavailable(f"Unexpected capacity response: {payload!r}")
        return CapacityResult(
            success=bool(payload.get('success')),
            error=payload.get('error'),
            clamped=bool(payload.get('clamped', False)),
            available=payload.get('available'),
        )

    async def reserve_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        payload = await self._call('POST', 'rpc/reserve_capacity', data={
            'p_date': parse_date(travel_date).isoformat(),
            'p_pax': pax_count,
        })
        return self._capacity_result(payload)

    async def release_capacity(self, travel_date: date, pax_count: int) -> CapacityResult:
        payload = await self._call('POST', 'rpc/release_capacity', data={
            'p_date': parse_date(travel_date).isoformat(),
            'p_pax': pax_count,
        })
        return self._capacity_result(payload)

    async def get_capacity(self, travel_date: date) -> Optional[Dict[str, Any]]:
        rows = await self._call('GET', 'daily_inventory', params={
            'select': '*', 'date': f'eq.{parse_date(travel_date).isoformat()}',
        })
        return rows[0] if rows else None

    async def set_capacity(self, travel_date: date, capacity: int, is_blocked: bool = False) -> Dict[str, Any]:
        rows = await self._call(
            'POST', 'daily_inventory',
            data={'date': parse_date(travel_date).isoformat(), 'capacity': capacity, 'is_blocked': is_blocked},
            headers={'Prefer': 'resolution=merge-duplicates,return=representation'},
            idempotent=True
        )
        if isinstance(rows, list):
            return rows[0] if rows else {}
        return rows or {}

    # ==================== CONNECTION TEST ====================

    def test_connection(self) -> Dict[str, Any]:
        """
        Test the API connection and authentication

        Returns:
            Connection test result
        """
        try:
            self._make_request('GET', EntityType.LEADS.value, params={'select': 'id', 'limit': 1})
            return {'success': True, 'message': 'Connected to hosted store', 'base_url': self.base_url}
        except (RemoteUnavailable, ValidationError) as e:
            return {
                'success': False,
                'message': e.message,
                'status_code': getattr(e, 'status_code', None),
                'base_url': self.base_url
            }
