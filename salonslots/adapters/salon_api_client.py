"""
Salon backend REST API client for the slot engine's collaborator reads.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests
from pendulum import DateTime

from ..domain.exceptions import UpstreamUnavailableError
from ..domain.models import ACTIVE_BOOKING_STATUSES, ExistingBooking, Provider, SalonHours, Service
from .payloads import (
    parse_booking,
    parse_provider,
    parse_salon_hours,
    parse_service,
    parse_slot_interval,
)

logger = logging.getLogger(__name__)


class SalonApiClient:
    """
    Client for the salon backend's read endpoints.

    Implements every collaborator protocol. Requests are blocking and run in
    a worker thread so the async service layer is never stalled. Failed
    requests raise ``UpstreamUnavailableError``; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timezone: str = "Europe/Berlin",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend API root, e.g. https://api.example.com/api/v1
            api_token: Optional bearer token
            timezone: IANA timezone for timestamps without an offset
            timeout_seconds: Per-request timeout
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timezone = timezone
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json"}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"

    async def get_service(self, service_id: str) -> Optional[Service]:
        record = await self._get("ServiceCatalog.get_service", f"/services/{service_id}")
        return parse_service(record) if record is not None else None

    async def list_eligible_providers(self, salon_id: str, service_category: str) -> List[Provider]:
        operation = "ProviderDirectory.list_eligible_providers"
        records = await self._get(
            operation,
            f"/salons/{salon_id}/masters",
            params={"category": service_category, "is_active": "true"},
        )
        return [parse_provider(record) for record in self._as_list(operation, records)]

    async def get_provider(self, provider_id: str) -> Optional[Provider]:
        record = await self._get("ProviderDirectory.get_provider", f"/masters/{provider_id}")
        return parse_provider(record) if record is not None else None

    async def list_active_bookings(
        self,
        provider_ids: Sequence[str],
        range_start: DateTime,
        range_end: DateTime,
    ) -> List[ExistingBooking]:
        """Fetch the bookings of all providers in one request."""
        operation = "BookingLedger.list_active_bookings"
        records = await self._get(
            operation,
            "/bookings",
            params={
                "master_ids": ",".join(provider_ids),
                "from": range_start.to_iso8601_string(),
                "to": range_end.to_iso8601_string(),
                "status": ",".join(sorted(ACTIVE_BOOKING_STATUSES)),
            },
        )
        if records is None:
            raise UpstreamUnavailableError(operation, "bookings endpoint returned 404")

        bookings = [parse_booking(record, self.timezone) for record in self._as_list(operation, records)]
        return [booking for booking in bookings if booking.is_active]

    async def get_operating_hours(self, salon_id: str) -> Optional[SalonHours]:
        record = await self._get("SalonConfig.get_operating_hours", f"/salons/{salon_id}")
        return parse_salon_hours(record) if record is not None else None

    async def get_slot_interval(self, salon_id: str) -> Optional[int]:
        record = await self._get("SalonConfig.get_slot_interval", f"/salons/{salon_id}")
        return parse_slot_interval(record) if record is not None else None

    async def _get(self, operation: str, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return await asyncio.to_thread(self._get_json, operation, path, params)

    def _get_json(self, operation: str, path: str, params: Optional[Dict[str, str]]) -> Any:
        """
        Perform a GET request and decode the JSON body.

        Returns:
            Decoded payload (unwrapped from a ``{"data": ...}`` envelope), or
            None for 404 responses

        Raises:
            UpstreamUnavailableError: On transport errors, other non-2xx
                responses or an undecodable body
        """
        url = f"{self.base_url}{path}"

        try:
            response = self.session.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
            if response.status_code == 404:
                logger.debug("GET %s returned 404", url)
                return None
            response.raise_for_status()
            payload = response.json()

        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailableError(operation, f"request to {url} failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailableError(operation, f"invalid JSON from {url}: {e}") from e

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _as_list(operation: str, payload: Any) -> List[Dict[str, Any]]:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise UpstreamUnavailableError(
                operation, f"expected a list, got {type(payload).__name__}"
            )
        return payload
