"""
Dashboard Endpoints

Role-scoped metrics for the operations dashboard:
- Summary stats (revenue, bookings, fleet utilization)
- Period-over-period growth
- Booking and revenue distributions
- Revenue chart series
- Report export pass-through

Caller identity comes from headers set by the authenticating proxy
(X-User-Roles, X-User-Company-Id). Scope is resolved once per request and
passed explicitly to every service call.
"""

from dataclasses import dataclass
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import Response

from transit_dash.errors import (
    ExportFailure,
    InvalidDateRange,
    InvalidScopeRequest,
    MisconfiguredAccount,
)
from transit_dash.models.enums import DatePreset, ExportFormat, TimeFrame
from transit_dash.models.metrics import DateRange, Scope
from transit_dash.models.schemas import (
    DashboardStatsResponse,
    DistributionResponse,
    GrowthResponse,
)
from transit_dash.services.date_ranges import parse_date_range, preset_range, time_frame_intervals
from transit_dash.services.distribution import DistributionService
from transit_dash.services.export import export_filename, export_report
from transit_dash.services.growth import GrowthCalculator
from transit_dash.services.metrics_aggregator import MetricsAggregator, get_metrics_aggregator
from transit_dash.services.revenue_series import RevenueSeriesService, to_chart_points
from transit_dash.services.scope import resolve_scope

router = APIRouter()


@dataclass
class Caller:
    roles: List[str]
    company_id: Optional[int]


def get_caller(
    x_user_roles: str = Header("", description="Comma separated role names"),
    x_user_company_id: Optional[int] = Header(None, description="Caller's assigned company"),
) -> Caller:
    roles = [r for r in (part.strip() for part in x_user_roles.split(",")) if r]
    return Caller(roles=roles, company_id=x_user_company_id)


def get_scope(
    company_id: Optional[str] = Query(None, description='Company id or "all"'),
    caller: Caller = Depends(get_caller),
) -> Scope:
    try:
        return resolve_scope(caller.roles, caller.company_id, company_id)
    except MisconfiguredAccount as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvalidScopeRequest as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_date_range(
    start_date: Optional[str] = Query(None, description="Start date (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="End date (YYYY-MM-DD)"),
) -> DateRange:
    try:
        return parse_date_range(start_date, end_date)
    except InvalidDateRange as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# METRICS
# =============================================================================

@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    scope: Scope = Depends(get_scope),
    date_range: DateRange = Depends(get_date_range),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """
    Summary metrics for the scope and period.

    Always 200: if an upstream source failed, affected fields are zero,
    success is false, and warnings name the failed sources.
    """
    result = await aggregator.compute_metrics(scope, date_range)
    return DashboardStatsResponse.from_result(result)


@router.get("/growth", response_model=GrowthResponse)
async def get_growth_rate(
    scope: Scope = Depends(get_scope),
    date_range: DateRange = Depends(get_date_range),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Revenue growth vs the immediately preceding period of equal length"""
    result = await GrowthCalculator(aggregator).compare(scope, date_range)
    return GrowthResponse.from_result(result)


# =============================================================================
# DISTRIBUTIONS
# =============================================================================

@router.get("/bookings-distribution", response_model=DistributionResponse)
async def get_bookings_distribution(
    scope: Scope = Depends(get_scope),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Bookings by status and by route (top 5 routes + Other Routes)"""
    result = await DistributionService(aggregator).bookings_distribution(scope)
    return DistributionResponse.from_result(result)


@router.get("/revenue-distribution", response_model=DistributionResponse)
async def get_revenue_distribution(
    scope: Scope = Depends(get_scope),
    date_range: DateRange = Depends(get_date_range),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Revenue by company (top 5 + Other Companies) and vehicle activity split"""
    result = await DistributionService(aggregator).revenue_distribution(scope, date_range)
    return DistributionResponse.from_result(result)


# =============================================================================
# CHARTS
# =============================================================================

@router.get("/revenue")
async def get_revenue_series(
    time_frame: TimeFrame = Query(TimeFrame.DAILY, description="Chart granularity"),
    scope: Scope = Depends(get_scope),
    date_range: DateRange = Depends(get_date_range),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Revenue and bookings per interval, with average fare and point-over-point growth"""
    result = await RevenueSeriesService(aggregator).get_revenue_series(scope, date_range, time_frame)
    labels, _ = time_frame_intervals(time_frame, date_range)
    return {
        "success": result.success,
        "time_frame": time_frame.value,
        "period": date_range.to_dict(),
        "labels": labels,
        "data": [point.to_dict() for point in to_chart_points(result.data)],
        "message": result.message,
    }


@router.get("/presets")
async def get_date_presets():
    """Date picker presets, resolved against today"""
    presets = []
    for preset in DatePreset:
        resolved = preset_range(preset)
        presets.append({
            "key": preset.value,
            "name": DatePreset.to_label(preset),
            **resolved.to_dict(),
        })
    return presets


# =============================================================================
# COMPANIES & EXPORT
# =============================================================================

@router.get("/companies")
async def get_companies(
    scope: Scope = Depends(get_scope),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Company selector options. Restricted callers only see their own company."""
    result = await aggregator.fetch_companies()
    companies = result.value
    if scope.restricted_to_company:
        companies = [c for c in companies if c.id == scope.company_id]
    return {
        "success": result.ok,
        "data": [c.to_dict() for c in companies],
        "message": result.error.as_warning() if result.error else None,
    }


@router.get("/export")
async def export_dashboard(
    format: ExportFormat = Query(..., description="csv, excel or pdf"),
    scope: Scope = Depends(get_scope),
    date_range: DateRange = Depends(get_date_range),
    aggregator: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Export report for the period; the upstream file is returned unchanged"""
    company_name = None
    if not scope.is_all:
        company = (await aggregator.fetch_company(scope.company_id)).value
        company_name = company.name if company else f"company-{scope.company_id}"

    try:
        payload = await export_report(format, date_range, scope, client=aggregator.client)
    except ExportFailure as e:
        raise HTTPException(status_code=502, detail=str(e))

    filename = export_filename(format, date_range, company_name)
    return Response(
        content=payload,
        media_type=format.media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/cache/clear")
async def clear_cache(aggregator: MetricsAggregator = Depends(get_metrics_aggregator)):
    """Drop every cached upstream read and snapshot"""
    aggregator.cache.clear()
    return {"success": True, "message": "Dashboard cache cleared"}
