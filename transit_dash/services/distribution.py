"""
Distribution Builder

Bounded "top-N plus Other" breakdowns for the dashboard's pie and bar charts:
- Bookings by status and by route
- Revenue by company
- Active vs inactive vehicles
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Union

from transit_dash.config import DISTRIBUTION_TOP_N
from transit_dash.models.metrics import (
    ZERO,
    DateRange,
    DistributionBucket,
    DistributionResult,
    Scope,
    to_decimal,
)
from transit_dash.services.cache import CacheKey
from transit_dash.services.metrics_aggregator import MetricsAggregator, get_metrics_aggregator

logger = logging.getLogger(__name__)

BucketLike = Union[DistributionBucket, Mapping[str, Any]]


def _as_bucket(item: BucketLike) -> DistributionBucket:
    if isinstance(item, DistributionBucket):
        return item
    value = item.get("value", item.get("count"))
    return DistributionBucket(label=str(item.get("label", "")), value=to_decimal(value))


def build_distribution(
    items: Iterable[BucketLike],
    top_n: int = DISTRIBUTION_TOP_N,
    category: str = "Items",
) -> List[DistributionBucket]:
    """
    Sort descending by value and keep the first top_n; the remainder is summed
    into one "Other <category>" bucket when it is greater than zero.

    The sort is stable, so ties keep their input order.
    """
    buckets = sorted((_as_bucket(i) for i in items), key=lambda b: b.value, reverse=True)
    if len(buckets) <= top_n:
        return buckets

    top = buckets[:top_n]
    remainder = sum((b.value for b in buckets[top_n:]), ZERO)
    if remainder > ZERO:
        top.append(DistributionBucket(label=f"Other {category}", value=remainder))
    return top


class DistributionService:
    """Builds the dashboard breakdowns from cached upstream reads"""

    def __init__(self, aggregator: Optional[MetricsAggregator] = None, top_n: int = DISTRIBUTION_TOP_N):
        self.aggregator = aggregator if aggregator is not None else get_metrics_aggregator()
        self.client = self.aggregator.client
        self.top_n = top_n

    async def bookings_distribution(self, scope: Scope) -> DistributionResult:
        """Bookings by status (as reported) and by route (top-N + Other Routes)"""
        fetch = self.aggregator.fetch_cached
        company_id = scope.company_id

        status_result, routes_result, route_counts_result = await asyncio.gather(
            fetch(
                CacheKey.of("booking_status_counts", company_id),
                lambda: self.client.get_booking_status_counts(company_id),
                [],
            ),
            fetch(
                CacheKey.of("routes", company_id),
                lambda: self.client.list_routes(company_id),
                {},
            ),
            fetch(
                CacheKey.of("booking_route_counts", company_id),
                lambda: self.client.get_booking_route_counts(company_id),
                [],
            ),
        )
        results = [status_result, routes_result, route_counts_result]
        warnings = [r.error.as_warning() for r in results if not r.ok]

        if not status_result.ok and not route_counts_result.ok:
            logger.warning(f"[Distribution] Booking distribution unavailable for company={company_id or 'all'}")
            return DistributionResult(data=None, warnings=warnings)

        status = [
            DistributionBucket(label=str(item["label"]), value=Decimal(item["count"]))
            for item in status_result.value
        ]

        route_names = routes_result.value
        routes = build_distribution(
            (
                DistributionBucket(
                    label=route_names.get(item["route_id"], f"Route {item['route_id']}"),
                    value=Decimal(item["count"]),
                )
                for item in route_counts_result.value
            ),
            top_n=self.top_n,
            category="Routes",
        )

        return DistributionResult(data={"status": status, "routes": routes}, warnings=warnings)

    async def revenue_distribution(self, scope: Scope, date_range: DateRange) -> DistributionResult:
        """Revenue split by company (or the single company) and vehicle activity split"""
        if scope.is_all:
            revenue_task = self._revenue_by_company(date_range)
        else:
            revenue_task = self._revenue_for_company(scope, date_range)

        (revenue, revenue_warnings), vehicles_result = await asyncio.gather(
            revenue_task,
            self.aggregator.fetch_vehicles(scope.company_id),
        )
        warnings = list(revenue_warnings)
        if not vehicles_result.ok:
            warnings.append(vehicles_result.error.as_warning())

        active = sum(1 for v in vehicles_result.value if v.counts_as_active)
        inactive = len(vehicles_result.value) - active
        vehicles = [DistributionBucket(label="Active Vehicles", value=Decimal(active))]
        if inactive:
            vehicles.append(DistributionBucket(label="Inactive Vehicles", value=Decimal(inactive)))

        return DistributionResult(data={"revenue": revenue, "vehicles": vehicles}, warnings=warnings)

    async def _revenue_by_company(self, date_range: DateRange):
        result = await self.aggregator.fetch_cached(
            CacheKey.of("revenue_by_company", date_range.start, date_range.end),
            lambda: self.client.get_revenue_by_company(date_range),
            [],
        )
        items = [
            DistributionBucket(
                label=row.get("name") or f"Company {row.get('id')}",
                value=to_decimal(row.get("revenue")),
            )
            for row in result.value
        ]
        warnings = [] if result.ok else [result.error.as_warning()]
        if items:
            return build_distribution(items, top_n=self.top_n, category="Companies"), warnings

        # No per-company breakdown: fall back to the all-companies total
        metrics = await self.aggregator.compute_metrics(Scope.all_companies(), date_range)
        fallback = [DistributionBucket(label="Actual Revenue", value=metrics.snapshot.total_revenue)]
        return fallback, warnings + metrics.warnings

    async def _revenue_for_company(self, scope: Scope, date_range: DateRange):
        metrics = await self.aggregator.compute_metrics(scope, date_range)
        snapshot = metrics.snapshot
        label = snapshot.company.name if snapshot.company else f"Company {scope.company_id}"
        return [DistributionBucket(label=label, value=snapshot.total_revenue)], metrics.warnings
