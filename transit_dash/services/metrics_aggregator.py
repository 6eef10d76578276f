"""
Dashboard Metrics Aggregator

Turns raw upstream resources (companies, vehicles, bookings) into a
role-scoped MetricsSnapshot.

Key rules:
- Only scanned-in bookings count toward revenue and volume
- Bookings are fetched globally per date range and joined locally: a booking
  belongs to a company only if one of that company's vehicles scanned it in
- Independent upstream reads are issued concurrently
- Upstream failure never aborts: the input degrades to empty and a warning
  is attached to the result
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from transit_dash.errors import UpstreamUnavailable
from transit_dash.models.metrics import (
    ZERO,
    Booking,
    Company,
    DateRange,
    FetchError,
    FetchResult,
    MetricsResult,
    MetricsSnapshot,
    Scope,
    Vehicle,
)
from transit_dash.services.cache import CacheKey, CacheStore, get_cache_store
from transit_dash.services.ticketing_client import TicketingClient, get_ticketing_client

logger = logging.getLogger(__name__)


def derive_snapshot(
    period: DateRange,
    company: Optional[Company],
    vehicles: Sequence[Vehicle],
    bookings: Sequence[Booking],
    company_scoped: bool,
) -> MetricsSnapshot:
    """
    Derive metrics from already-fetched inputs.

    When company_scoped, a booking only counts if its vehicle_id is in the
    vehicle set; otherwise any scanned-in booking counts.
    """
    active_vehicles = sum(1 for v in vehicles if v.counts_as_active)

    if company_scoped:
        vehicle_ids = {v.id for v in vehicles}
        counted = [
            b for b in bookings
            if b.is_scanned_in and b.vehicle_id is not None and b.vehicle_id in vehicle_ids
        ]
    else:
        counted = [b for b in bookings if b.is_scanned_in]

    total_revenue = sum((b.revenue for b in counted), ZERO)

    return MetricsSnapshot.build(
        period=period,
        company=company,
        total_revenue=total_revenue,
        total_bookings=len(counted),
        total_active_vehicles=active_vehicles,
    )


class MetricsAggregator:
    """Fans out to the ticketing API through the cache and builds snapshots."""

    def __init__(
        self,
        client: Optional[TicketingClient] = None,
        cache: Optional[CacheStore] = None,
    ):
        self.client = client if client is not None else get_ticketing_client()
        self.cache = cache if cache is not None else get_cache_store()

    async def fetch_cached(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[Any]],
        default: Any,
        force_refresh: bool = False,
    ) -> FetchResult:
        """
        Read through the cache. Failures are converted to a FetchResult
        carrying `default` and are never cached.
        """
        cached = None if force_refresh else self.cache.get(key)
        if cached is not None:
            return FetchResult(value=cached)

        try:
            value = await loader()
        except UpstreamUnavailable as e:
            return FetchResult(
                value=default,
                error=FetchError(resource=e.resource, message=e.message, status_code=e.status_code),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Metrics] Malformed {key.resource} payload: {e!r}")
            return FetchResult(
                value=default,
                error=FetchError(resource=key.resource, message="malformed response"),
            )

        self.cache.set(key, value)
        return FetchResult(value=value)

    # =========================================================================
    # Upstream reads
    # =========================================================================

    async def fetch_company(self, company_id: int, force_refresh: bool = False) -> FetchResult:
        return await self.fetch_cached(
            CacheKey.of("company", company_id),
            lambda: self.client.get_company(company_id),
            None,
            force_refresh,
        )

    async def fetch_companies(self) -> FetchResult:
        return await self.fetch_cached(
            CacheKey.of("companies"),
            self.client.list_companies,
            [],
        )

    async def fetch_vehicles(self, company_id: Optional[int], force_refresh: bool = False) -> FetchResult:
        return await self.fetch_cached(
            CacheKey.of("vehicles", company_id),
            lambda: self.client.list_vehicles(company_id),
            [],
            force_refresh,
        )

    async def fetch_bookings(self, date_range: DateRange, force_refresh: bool = False) -> FetchResult:
        # Keyed by range only; bookings are filtered per company locally
        return await self.fetch_cached(
            CacheKey.of("bookings", date_range.start, date_range.end),
            lambda: self.client.list_bookings(date_range),
            [],
            force_refresh,
        )

    # =========================================================================
    # Metrics
    # =========================================================================

    async def compute_metrics(
        self,
        scope: Scope,
        date_range: DateRange,
        force_refresh: bool = False,
    ) -> MetricsResult:
        """
        Compute a best-effort snapshot for scope and date_range.

        Never raises for upstream failure. A fully successful snapshot is
        cached so an identical call within the TTL makes no upstream calls.
        """
        snapshot_key = CacheKey.of("metrics", scope.company_id, date_range.start, date_range.end)
        cached = None if force_refresh else self.cache.get(snapshot_key)
        if cached is not None:
            return MetricsResult(snapshot=cached)

        company: Optional[Company] = None
        results: List[FetchResult]

        if scope.is_all:
            vehicles_result, bookings_result = await asyncio.gather(
                self.fetch_vehicles(None, force_refresh),
                self.fetch_bookings(date_range, force_refresh),
            )
            results = [vehicles_result, bookings_result]
        else:
            company_result, vehicles_result, bookings_result = await asyncio.gather(
                self.fetch_company(scope.company_id, force_refresh),
                self.fetch_vehicles(scope.company_id, force_refresh),
                self.fetch_bookings(date_range, force_refresh),
            )
            company = company_result.value
            results = [company_result, vehicles_result, bookings_result]

        warnings = [r.error.as_warning() for r in results if not r.ok]

        snapshot = derive_snapshot(
            period=date_range,
            company=company,
            vehicles=vehicles_result.value,
            bookings=bookings_result.value,
            company_scoped=not scope.is_all,
        )

        if warnings:
            logger.warning(
                f"[Metrics] Partial snapshot for company={scope.company_id or 'all'} "
                f"{date_range.start}..{date_range.end}: {'; '.join(warnings)}"
            )
        else:
            self.cache.set(snapshot_key, snapshot)

        return MetricsResult(snapshot=snapshot, warnings=warnings)


# Singleton instance
_metrics_aggregator: Optional[MetricsAggregator] = None


def get_metrics_aggregator() -> MetricsAggregator:
    """Factory function for MetricsAggregator."""
    global _metrics_aggregator
    if _metrics_aggregator is None:
        _metrics_aggregator = MetricsAggregator()
    return _metrics_aggregator
