"""
Dashboard Services

Cache, ticketing API client, and the metric computations built on them.
"""

from .cache import CacheKey, CacheStore, InMemoryCacheStore, get_cache_store
from .ticketing_client import TicketingClient, get_ticketing_client
from .scope import resolve_scope
from .metrics_aggregator import MetricsAggregator, derive_snapshot, get_metrics_aggregator
from .distribution import DistributionService, build_distribution
from .growth import GrowthCalculator

__all__ = [
    "CacheKey",
    "CacheStore",
    "InMemoryCacheStore",
    "get_cache_store",
    "TicketingClient",
    "get_ticketing_client",
    "resolve_scope",
    "MetricsAggregator",
    "derive_snapshot",
    "get_metrics_aggregator",
    "DistributionService",
    "build_distribution",
    "GrowthCalculator",
]
