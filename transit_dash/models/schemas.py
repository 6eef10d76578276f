"""
Pydantic Models for Dashboard Responses

Money is serialized as a 2-place decimal string ("1700.00"), matching the
ticketing backend's report format.
"""

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from transit_dash.models.metrics import (
    DateRange,
    DistributionResult,
    GrowthResult,
    MetricsResult,
)


class Period(BaseModel):
    start_date: str = Field(..., description="Inclusive start (YYYY-MM-DD)")
    end_date: str = Field(..., description="Inclusive end (YYYY-MM-DD)")

    @classmethod
    def from_range(cls, date_range: DateRange) -> "Period":
        return cls(**date_range.to_dict())


class CompanyInfo(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: Optional[str] = None


class Metrics(BaseModel):
    total_revenue: Decimal
    total_bookings: int
    total_active_vehicles: int
    average_fare: Decimal
    revenue_per_vehicle: Decimal
    bookings_per_day: Decimal


class DashboardStats(BaseModel):
    period: Period
    company: Optional[CompanyInfo] = None
    metrics: Metrics


class DashboardStatsResponse(BaseModel):
    """Snapshot plus failure visibility; success is False when any input degraded"""
    success: bool
    data: DashboardStats
    message: Optional[str] = None
    warnings: List[str] = []

    @classmethod
    def from_result(cls, result: MetricsResult) -> "DashboardStatsResponse":
        return cls(
            success=result.success,
            data=DashboardStats(**result.snapshot.to_dict()),
            message=result.message,
            warnings=result.warnings,
        )


class GrowthData(BaseModel):
    growth_rate: Decimal = Field(..., description="Percent change vs previous period")
    current_revenue: Decimal
    previous_revenue: Decimal
    current_period: Period
    previous_period: Period


class GrowthResponse(BaseModel):
    success: bool
    data: GrowthData
    warnings: List[str] = []

    @classmethod
    def from_result(cls, result: GrowthResult) -> "GrowthResponse":
        comparison = result.comparison
        return cls(
            success=result.success,
            data=GrowthData(
                growth_rate=comparison.growth_rate_percent,
                current_revenue=comparison.current_revenue,
                previous_revenue=comparison.previous_revenue,
                current_period=Period.from_range(result.current_period),
                previous_period=Period.from_range(result.previous_period),
            ),
            warnings=result.warnings,
        )


class Bucket(BaseModel):
    label: str
    value: Decimal


class DistributionResponse(BaseModel):
    success: bool
    data: Optional[Dict[str, List[Bucket]]] = None
    message: Optional[str] = None

    @classmethod
    def from_result(cls, result: DistributionResult) -> "DistributionResponse":
        data = None
        if result.data is not None:
            data = {
                name: [Bucket(label=b.label, value=b.value) for b in buckets]
                for name, buckets in result.data.items()
            }
        return cls(success=result.success, data=data, message=result.message)
