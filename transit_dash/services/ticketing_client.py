"""
Ticketing API Client

Handles all HTTP requests to the ticketing backend with bearer authentication.
Read-only: the dashboard engine never writes back upstream.

Every failure (transport error, non-2xx, unsuccessful envelope) is raised as
UpstreamUnavailable naming the resource that failed.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from transit_dash.config import (
    TICKETING_API_BASE_URL,
    TICKETING_API_TIMEOUT,
    TICKETING_API_TOKEN,
)
from transit_dash.errors import UpstreamUnavailable
from transit_dash.models.enums import ExportFormat, TimeFrame
from transit_dash.models.metrics import Booking, Company, DateRange, Vehicle, to_int

logger = logging.getLogger(__name__)


class TicketingClient:
    """Client for ticketing API requests"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or TICKETING_API_BASE_URL).rstrip("/")
        self.auth_token = auth_token or TICKETING_API_TOKEN
        self.timeout = timeout or TICKETING_API_TIMEOUT
        self._transport = transport

    def _get_headers(self, accept: str = "application/json") -> Dict[str, str]:
        """Get default headers for ticketing API requests"""
        headers = {"Accept": accept}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _request(
        self,
        resource: str,
        path: str,
        params: Optional[Dict] = None,
        accept: str = "application/json",
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._get_headers(accept), params=params)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"[Ticketing Client] {resource}: HTTP {status} from {path}")
            raise UpstreamUnavailable(resource, f"HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.warning(f"[Ticketing Client] {resource}: {e.__class__.__name__} calling {path}")
            raise UpstreamUnavailable(resource, str(e) or e.__class__.__name__) from e

    async def get(self, resource: str, path: str, params: Optional[Dict] = None) -> Any:
        """Make GET request and unwrap the {success, data, message} envelope"""
        response = await self._request(resource, path, params)
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(resource, "invalid JSON response") from e
        return self._unwrap(resource, payload)

    async def get_bytes(self, resource: str, path: str, params: Optional[Dict] = None) -> bytes:
        """Make GET request for a binary payload"""
        response = await self._request(resource, path, params, accept="*/*")
        return response.content

    @staticmethod
    def _unwrap(resource: str, payload: Any) -> Any:
        if isinstance(payload, dict) and "data" in payload:
            if payload.get("success") is False:
                raise UpstreamUnavailable(resource, payload.get("message") or "request unsuccessful")
            data = payload["data"]
            # Paginated collections nest their items one level deeper
            if isinstance(data, dict) and isinstance(data.get("data"), list):
                return data["data"]
            return data
        return payload

    @staticmethod
    def _as_list(resource: str, data: Any) -> List[Dict[str, Any]]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamUnavailable(resource, "unexpected response format")
        return [item for item in data if isinstance(item, dict)]

    # =========================================================================
    # Companies
    # =========================================================================

    async def list_companies(self) -> List[Company]:
        data = await self.get("companies", "/companies", {"paginate": "false"})
        return [Company.from_api(c) for c in self._as_list("companies", data)]

    async def get_company(self, company_id: int) -> Company:
        data = await self.get("company", f"/companies/{company_id}")
        if not isinstance(data, dict):
            raise UpstreamUnavailable("company", "unexpected response format")
        return Company.from_api(data)

    # =========================================================================
    # Fleet & bookings
    # =========================================================================

    async def list_vehicles(self, company_id: Optional[int] = None) -> List[Vehicle]:
        params: Dict[str, Any] = {"paginate": "false"}
        if company_id is not None:
            params["company_id"] = company_id
        data = await self.get("vehicles", "/vehicles", params)
        vehicles = [Vehicle.from_api(v) for v in self._as_list("vehicles", data)]
        if company_id is not None:
            # Server-side company filter is advisory; unowned vehicles never join a company
            vehicles = [v for v in vehicles if v.company_id == company_id]
        return vehicles

    async def list_bookings(self, date_range: DateRange) -> List[Booking]:
        """All bookings in range. No company filter: the caller joins on vehicles."""
        params = {**date_range.to_params(), "paginate": "false"}
        data = await self.get("bookings", "/bookings/by_date_range", params)
        return [Booking.from_api(b) for b in self._as_list("bookings", data)]

    async def list_routes(self, company_id: Optional[int] = None) -> Dict[int, str]:
        """Route id -> route name"""
        params: Dict[str, Any] = {"paginate": "false"}
        if company_id is not None:
            params["company_id"] = company_id
        data = await self.get("routes", "/routes", params)
        return {
            int(r["id"]): r.get("name") or f"Route {r['id']}"
            for r in self._as_list("routes", data)
            if r.get("id") is not None
        }

    # =========================================================================
    # Reports
    # =========================================================================

    async def get_revenue_series(
        self,
        date_range: DateRange,
        company_id: Optional[int] = None,
        granularity: TimeFrame = TimeFrame.DAILY,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {**date_range.to_params(), "time_frame": granularity.value}
        if company_id is not None:
            params["company_id"] = company_id
        data = await self.get("revenue series", "/reports/revenue", params)
        return self._as_list("revenue series", data)

    async def get_booking_status_counts(self, company_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"company_id": company_id} if company_id is not None else None
        data = await self.get("booking status counts", "/reports/bookings-by-status", params)
        return [
            {"label": item.get("status") or item.get("label") or "unknown", "count": to_int(item.get("count"), 0)}
            for item in self._as_list("booking status counts", data)
        ]

    async def get_booking_route_counts(self, company_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"company_id": company_id} if company_id is not None else None
        data = await self.get("booking route counts", "/reports/bookings-by-route", params)
        return [
            {"route_id": to_int(item.get("route_id")), "count": to_int(item.get("count"), 0)}
            for item in self._as_list("booking route counts", data)
        ]

    async def get_revenue_by_company(self, date_range: Optional[DateRange] = None) -> List[Dict[str, Any]]:
        params = date_range.to_params() if date_range else None
        data = await self.get("revenue by company", "/reports/revenue-by-company", params)
        return self._as_list("revenue by company", data)

    async def export_report(
        self,
        export_format: ExportFormat,
        date_range: DateRange,
        company_id: Optional[int] = None,
    ) -> bytes:
        params: Dict[str, Any] = {**date_range.to_params(), "format": export_format.value}
        if company_id is not None:
            params["company_id"] = company_id
        return await self.get_bytes("export", "/reports/export", params)


# Singleton instance
_ticketing_client: Optional[TicketingClient] = None


def get_ticketing_client() -> TicketingClient:
    """Get or create ticketing client instance"""
    global _ticketing_client
    if _ticketing_client is None:
        _ticketing_client = TicketingClient()
    return _ticketing_client
