"""
Dashboard Metric Models

Dataclasses for upstream records (companies, vehicles, bookings) and the
derived metric results. Upstream records are transient DTOs; they are parsed
from ticketing API payloads and discarded once a snapshot is built.

All money is Decimal. Ratios are quantized to 2 places.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Generic, List, Optional, TypeVar

from transit_dash.errors import InvalidDateRange

T = TypeVar("T")

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Safely convert an upstream value ("12.50", 12.5, None) to Decimal."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Safely convert value to int."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def safe_div(numerator: Decimal, denominator, default: Decimal = ZERO) -> Decimal:
    """Safe division with default."""
    if not denominator:
        return default
    return numerator / Decimal(denominator)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; Laravel-style 'Z' suffix accepted."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


# ============== Request scope ==============

@dataclass(frozen=True)
class DateRange:
    """Inclusive date range"""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise InvalidDateRange(
                f"start date {self.start.isoformat()} is after end date {self.end.isoformat()}"
            )

    @property
    def day_count(self) -> int:
        """Both endpoints count; a single-day range is 1 day."""
        return (self.end - self.start).days + 1

    def previous(self) -> "DateRange":
        """Immediately preceding, equal-length, non-overlapping window."""
        period_length = (self.end - self.start).days
        previous_end = self.start - timedelta(days=1)
        return DateRange(start=previous_end - timedelta(days=period_length), end=previous_end)

    def to_params(self) -> Dict[str, str]:
        return {"start_date": self.start.isoformat(), "end_date": self.end.isoformat()}

    def to_dict(self) -> Dict[str, str]:
        return self.to_params()


@dataclass(frozen=True)
class Scope:
    """Company boundary a computation is restricted to.

    company_id None means all companies. restricted_to_company marks callers
    who may never widen the scope, regardless of what they request.
    """
    company_id: Optional[int] = None
    restricted_to_company: bool = False

    def __post_init__(self):
        if self.restricted_to_company and self.company_id is None:
            raise ValueError("A restricted scope requires a company_id")

    @classmethod
    def all_companies(cls) -> "Scope":
        return cls(company_id=None, restricted_to_company=False)

    @property
    def is_all(self) -> bool:
        return self.company_id is None

    def to_params(self) -> Dict[str, int]:
        return {} if self.is_all else {"company_id": self.company_id}


# ============== Upstream records ==============

@dataclass
class Company:
    """Read-only company projection"""
    id: int
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Company":
        return cls(
            id=int(data["id"]),
            name=data.get("name") or f"Company {data['id']}",
            email=data.get("email"),
            phone_number=data.get("phone_number"),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone_number": self.phone_number,
            "created_at": self.created_at,
        }


@dataclass
class Vehicle:
    id: int
    company_id: Optional[int]
    is_active: Optional[bool] = None  # None = not reported by upstream

    @property
    def counts_as_active(self) -> bool:
        # Unspecified activity counts as active (legacy default)
        return self.is_active is None or bool(self.is_active)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Vehicle":
        return cls(
            id=int(data["id"]),
            company_id=to_int(data.get("company_id")),
            is_active=data.get("is_active"),
        )


@dataclass
class Booking:
    id: int
    vehicle_id: Optional[int]
    fare: Decimal = ZERO
    has_parcel: bool = False
    parcel_fare: Decimal = ZERO
    scanned_in_at: Optional[datetime] = None
    scanned_in_raw: Optional[str] = None  # as sent, kept when it does not parse

    @property
    def is_scanned_in(self) -> bool:
        # Presence marks a validated trip, whether or not the timestamp parses
        return self.scanned_in_at is not None or bool(self.scanned_in_raw)

    @property
    def revenue(self) -> Decimal:
        return self.fare + (self.parcel_fare if self.has_parcel else ZERO)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Booking":
        # Upstream spells parcel as "percel"
        has_parcel = data.get("has_parcel", data.get("has_percel", False))
        parcel_fare = data.get("parcel_fare", data.get("percel_fare"))
        scanned_in = data.get("scanned_in_at")
        return cls(
            id=int(data["id"]),
            vehicle_id=to_int(data.get("vehicle_id")),
            fare=to_decimal(data.get("fare")),
            has_parcel=bool(has_parcel),
            parcel_fare=to_decimal(parcel_fare),
            scanned_in_at=parse_timestamp(scanned_in),
            scanned_in_raw=str(scanned_in) if scanned_in else None,
        )


# ============== Fetch results ==============

@dataclass(frozen=True)
class FetchError:
    resource: str
    message: str
    status_code: Optional[int] = None

    def as_warning(self) -> str:
        return f"{self.resource} unavailable: {self.message}"


@dataclass
class FetchResult(Generic[T]):
    """Outcome of one upstream read: a value, or a default plus the error"""
    value: T
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ============== Derived metrics ==============

@dataclass(frozen=True)
class MetricsSnapshot:
    """Role-scoped business metrics for one period"""
    period: DateRange
    company: Optional[Company]
    total_revenue: Decimal
    total_bookings: int
    total_active_vehicles: int
    average_fare: Decimal
    revenue_per_vehicle: Decimal
    bookings_per_day: Decimal

    @classmethod
    def build(
        cls,
        period: DateRange,
        company: Optional[Company],
        total_revenue: Decimal,
        total_bookings: int,
        total_active_vehicles: int,
    ) -> "MetricsSnapshot":
        """Derive the ratio fields; zero denominators yield 0."""
        return cls(
            period=period,
            company=company,
            total_revenue=quantize(total_revenue),
            total_bookings=total_bookings,
            total_active_vehicles=total_active_vehicles,
            average_fare=quantize(safe_div(total_revenue, total_bookings)),
            revenue_per_vehicle=quantize(safe_div(total_revenue, total_active_vehicles)),
            bookings_per_day=quantize(safe_div(Decimal(total_bookings), period.day_count)),
        )

    @classmethod
    def empty(cls, period: DateRange, company: Optional[Company] = None) -> "MetricsSnapshot":
        return cls.build(period, company, ZERO, 0, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period.to_dict(),
            "company": self.company.to_dict() if self.company else None,
            "metrics": {
                "total_revenue": str(self.total_revenue),
                "total_bookings": self.total_bookings,
                "total_active_vehicles": self.total_active_vehicles,
                "average_fare": str(self.average_fare),
                "revenue_per_vehicle": str(self.revenue_per_vehicle),
                "bookings_per_day": str(self.bookings_per_day),
            },
        }


@dataclass
class MetricsResult:
    """Best-effort snapshot plus failure visibility"""
    snapshot: MetricsSnapshot
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings

    @property
    def message(self) -> Optional[str]:
        return "; ".join(self.warnings) if self.warnings else None


@dataclass(frozen=True)
class DistributionBucket:
    label: str
    value: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": str(self.value)}


@dataclass
class DistributionResult:
    data: Optional[Dict[str, List[DistributionBucket]]]
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.data is not None and not self.warnings

    @property
    def message(self) -> Optional[str]:
        return "; ".join(self.warnings) if self.warnings else None


@dataclass(frozen=True)
class GrowthComparison:
    current_revenue: Decimal
    previous_revenue: Decimal
    growth_rate_percent: Decimal

    @classmethod
    def from_revenues(cls, current: Decimal, previous: Decimal) -> "GrowthComparison":
        if previous == ZERO:
            rate = Decimal("100") if current > ZERO else ZERO
        else:
            rate = (current - previous) / previous * Decimal("100")
        return cls(
            current_revenue=current,
            previous_revenue=previous,
            growth_rate_percent=quantize(rate),
        )


@dataclass
class GrowthResult:
    comparison: GrowthComparison
    current_period: DateRange
    previous_period: DateRange
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.warnings


@dataclass(frozen=True)
class RevenuePoint:
    date: str
    revenue: Decimal
    bookings: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RevenuePoint":
        return cls(
            date=str(data.get("date") or data.get("name") or ""),
            revenue=to_decimal(data.get("revenue")),
            bookings=to_int(data.get("bookings"), 0),
        )


@dataclass
class SeriesResult:
    data: List[RevenuePoint]
    message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.message is None
