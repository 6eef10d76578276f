"""
Scheduler Module

Background jobs for the dashboard cache.
Uses APScheduler to prune expired cache entries and, optionally, to keep the
default all-companies dashboard warm.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from transit_dash.config import (
    CACHE_PRUNE_INTERVAL_MINUTES,
    CACHE_TTL_SECONDS,
    CACHE_WARM_ENABLED,
    SCHEDULER_ENABLED,
)
from transit_dash.models.metrics import Scope
from transit_dash.services.cache import get_cache_store
from transit_dash.services.date_ranges import parse_date_range
from transit_dash.services.metrics_aggregator import get_metrics_aggregator

logger = logging.getLogger(__name__)

# Create scheduler
scheduler = AsyncIOScheduler()


async def scheduled_cache_prune():
    """Drop expired cache entries (every N minutes)"""
    removed = get_cache_store().prune()
    if removed:
        logger.info(f"[Scheduler] Pruned {removed} expired cache entries")


async def scheduled_cache_warm():
    """Refresh the default all-companies snapshot before its entry expires"""
    date_range = parse_date_range(None, None)
    result = await get_metrics_aggregator().compute_metrics(
        Scope.all_companies(), date_range, force_refresh=True
    )
    if result.success:
        logger.info(f"[Scheduler] Warmed dashboard cache for {date_range.start}..{date_range.end}")
    else:
        logger.warning(f"[Scheduler] Cache warm incomplete: {result.message}")


def start_scheduler():
    """Start the background scheduler"""
    if not SCHEDULER_ENABLED:
        logger.info("[Scheduler] Scheduler disabled via SCHEDULER_ENABLED=false")
        return

    scheduler.add_job(
        scheduled_cache_prune,
        trigger=IntervalTrigger(minutes=CACHE_PRUNE_INTERVAL_MINUTES),
        id="cache_prune",
        name="Prune expired cache entries",
        replace_existing=True,
    )

    if CACHE_WARM_ENABLED:
        # Refresh slightly before the TTL lapses
        scheduler.add_job(
            scheduled_cache_warm,
            trigger=IntervalTrigger(seconds=max(CACHE_TTL_SECONDS - 30, 30)),
            id="cache_warm",
            name="Warm default dashboard snapshot",
            replace_existing=True,
        )

    scheduler.start()
    logger.info(f"[Scheduler] Started with {len(scheduler.get_jobs())} jobs")


def stop_scheduler():
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("[Scheduler] Stopped")
