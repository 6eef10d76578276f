import os

# ── Environment Overrides ───────────────────────────────────────────
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TICKETING_API_BASE_URL"] = "http://ticketing.test/api"
os.environ["TICKETING_API_TOKEN"] = "test-token"
# ────────────────────────────────────────────────────────────────────

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from transit_dash.errors import UpstreamUnavailable
from transit_dash.models.metrics import Booking, Company, DateRange, Vehicle
from transit_dash.services.cache import InMemoryCacheStore
from transit_dash.services.metrics_aggregator import MetricsAggregator

SCANNED = datetime(2025, 1, 3, 8, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeTicketingClient:
    """In-memory stand-in for TicketingClient that records every call."""

    def __init__(self, companies=None, vehicles=None, bookings=None, delay: float = 0.0):
        self.companies = companies or []
        self.vehicles = vehicles or []
        self.bookings = bookings or []
        self.routes = {}
        self.status_counts = []
        self.route_counts = []
        self.revenue_by_company = []
        self.revenue_series = []
        self.export_payload = b"id,fare\n1,1000\n"
        self.fail = set()
        self.calls = []
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def _call(self, resource: str):
        self.calls.append(resource)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if resource in self.fail:
                raise UpstreamUnavailable(resource, "HTTP 503", status_code=503)
        finally:
            self.in_flight -= 1

    async def list_companies(self):
        await self._call("companies")
        return list(self.companies)

    async def get_company(self, company_id):
        await self._call("company")
        for company in self.companies:
            if company.id == company_id:
                return company
        raise UpstreamUnavailable("company", "HTTP 404", status_code=404)

    async def list_vehicles(self, company_id=None):
        await self._call("vehicles")
        return [v for v in self.vehicles if company_id is None or v.company_id == company_id]

    async def list_bookings(self, date_range):
        await self._call("bookings")
        return list(self.bookings)

    async def list_routes(self, company_id=None):
        await self._call("routes")
        return dict(self.routes)

    async def get_booking_status_counts(self, company_id=None):
        await self._call("booking status counts")
        return list(self.status_counts)

    async def get_booking_route_counts(self, company_id=None):
        await self._call("booking route counts")
        return list(self.route_counts)

    async def get_revenue_by_company(self, date_range=None):
        await self._call("revenue by company")
        return list(self.revenue_by_company)

    async def get_revenue_series(self, date_range, company_id=None, granularity=None):
        await self._call("revenue series")
        return list(self.revenue_series)

    async def export_report(self, export_format, date_range, company_id=None):
        await self._call("export")
        return self.export_payload


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return InMemoryCacheStore(ttl_seconds=300, clock=clock)


@pytest.fixture
def fleet_client():
    """
    Company 1 owns vehicles 11 and 12; company 2 owns vehicle 21.
    B3 was scanned by another company's vehicle and B4 was never scanned.
    """
    return FakeTicketingClient(
        companies=[
            Company(id=1, name="Metro Express", email="ops@metro.test", phone_number="555-0100"),
            Company(id=2, name="Lakeside Lines"),
        ],
        vehicles=[
            Vehicle(id=11, company_id=1, is_active=True),
            Vehicle(id=12, company_id=1, is_active=True),
            Vehicle(id=21, company_id=2, is_active=True),
        ],
        bookings=[
            Booking(id=1, vehicle_id=11, fare=Decimal("1000"), scanned_in_at=SCANNED),
            Booking(id=2, vehicle_id=12, fare=Decimal("500"), has_parcel=True,
                    parcel_fare=Decimal("200"), scanned_in_at=SCANNED),
            Booking(id=3, vehicle_id=21, fare=Decimal("9999"), scanned_in_at=SCANNED),
            Booking(id=4, vehicle_id=11, fare=Decimal("300"), scanned_in_at=None),
        ],
    )


@pytest.fixture
def aggregator(fleet_client, cache):
    return MetricsAggregator(client=fleet_client, cache=cache)


@pytest.fixture
def ten_days():
    return DateRange(date(2025, 1, 1), date(2025, 1, 10))
