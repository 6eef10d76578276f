"""
Growth Calculator

Period-over-period revenue change: the requested range against the
immediately preceding, equal-length, non-overlapping range.
"""

import asyncio
import logging
from typing import Optional

from transit_dash.models.metrics import DateRange, GrowthComparison, GrowthResult, Scope
from transit_dash.services.metrics_aggregator import MetricsAggregator, get_metrics_aggregator

logger = logging.getLogger(__name__)


class GrowthCalculator:

    def __init__(self, aggregator: Optional[MetricsAggregator] = None):
        self.aggregator = aggregator if aggregator is not None else get_metrics_aggregator()

    async def compare(self, scope: Scope, current_range: DateRange) -> GrowthResult:
        """
        Compare revenue for current_range with the preceding period.

        Both aggregations run concurrently. A period whose aggregation fails
        contributes its degraded (zero) revenue and its warnings; nothing is
        raised.
        """
        previous_range = current_range.previous()

        current, previous = await asyncio.gather(
            self.aggregator.compute_metrics(scope, current_range),
            self.aggregator.compute_metrics(scope, previous_range),
        )

        comparison = GrowthComparison.from_revenues(
            current=current.snapshot.total_revenue,
            previous=previous.snapshot.total_revenue,
        )

        warnings = [f"current period: {w}" for w in current.warnings]
        warnings += [f"previous period: {w}" for w in previous.warnings]

        logger.debug(
            f"[Growth] company={scope.company_id or 'all'} "
            f"{current_range.start}..{current_range.end} vs {previous_range.start}..{previous_range.end}: "
            f"{comparison.growth_rate_percent}%"
        )

        return GrowthResult(
            comparison=comparison,
            current_period=current_range,
            previous_period=previous_range,
            warnings=warnings,
        )
