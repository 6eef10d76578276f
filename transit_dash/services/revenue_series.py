"""
Revenue Series

Chart-oriented revenue/bookings series from the ticketing reports endpoint.
Each point carries its average fare and its growth against the previous
point; growth is always computed from real data.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from transit_dash.models.enums import TimeFrame
from transit_dash.models.metrics import (
    DateRange,
    GrowthComparison,
    RevenuePoint,
    Scope,
    SeriesResult,
    quantize,
    safe_div,
)
from transit_dash.services.cache import CacheKey
from transit_dash.services.metrics_aggregator import MetricsAggregator, get_metrics_aggregator


@dataclass(frozen=True)
class ChartPoint:
    name: str
    revenue: Decimal
    bookings: int
    average_fare: Decimal
    growth_rate_percent: Optional[Decimal]  # None for the first point

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "revenue": str(self.revenue),
            "bookings": self.bookings,
            "average_fare": str(self.average_fare),
            "growth_rate_percent": (
                str(self.growth_rate_percent) if self.growth_rate_percent is not None else None
            ),
        }


def to_chart_points(points: List[RevenuePoint]) -> List[ChartPoint]:
    chart: List[ChartPoint] = []
    previous: Optional[RevenuePoint] = None
    for point in points:
        growth = None
        if previous is not None:
            growth = GrowthComparison.from_revenues(point.revenue, previous.revenue).growth_rate_percent
        chart.append(ChartPoint(
            name=point.date,
            revenue=quantize(point.revenue),
            bookings=point.bookings,
            average_fare=quantize(safe_div(point.revenue, point.bookings)),
            growth_rate_percent=growth,
        ))
        previous = point
    return chart


class RevenueSeriesService:

    def __init__(self, aggregator: Optional[MetricsAggregator] = None):
        self.aggregator = aggregator if aggregator is not None else get_metrics_aggregator()
        self.client = self.aggregator.client

    async def get_revenue_series(
        self,
        scope: Scope,
        date_range: DateRange,
        time_frame: TimeFrame = TimeFrame.DAILY,
    ) -> SeriesResult:
        """Never raises for upstream failure; success is False with a message."""
        result = await self.aggregator.fetch_cached(
            CacheKey.of("revenue_series", scope.company_id, date_range.start, date_range.end, time_frame.value),
            lambda: self._load(scope, date_range, time_frame),
            [],
        )
        if not result.ok:
            return SeriesResult(data=[], message=f"Failed to fetch revenue data: {result.error.message}")
        return SeriesResult(data=result.value)

    async def _load(self, scope: Scope, date_range: DateRange, time_frame: TimeFrame) -> List[RevenuePoint]:
        rows = await self.client.get_revenue_series(date_range, scope.company_id, time_frame)
        return [RevenuePoint.from_api(row) for row in rows]
