"""
Metrics aggregation: scoped joins, derived ratios, degradation, caching.
"""

from datetime import date
from decimal import Decimal

import pytest

from tests.conftest import SCANNED, FakeTicketingClient
from transit_dash.models.metrics import Booking, DateRange, Scope, Vehicle
from transit_dash.services.cache import CacheKey, InMemoryCacheStore
from transit_dash.services.metrics_aggregator import MetricsAggregator, derive_snapshot


@pytest.mark.asyncio
async def test_company_scope_counts_only_bookings_scanned_by_company_vehicles(aggregator, ten_days):
    result = await aggregator.compute_metrics(Scope(company_id=1), ten_days)
    snapshot = result.snapshot

    assert result.success
    assert result.warnings == []
    assert snapshot.company.name == "Metro Express"
    assert snapshot.total_bookings == 2
    assert snapshot.total_revenue == Decimal("1700")
    assert snapshot.average_fare == Decimal("850")
    assert snapshot.total_active_vehicles == 2
    assert snapshot.revenue_per_vehicle == Decimal("850")


@pytest.mark.asyncio
async def test_bookings_per_day_over_ten_day_range(aggregator, ten_days):
    result = await aggregator.compute_metrics(Scope(company_id=1), ten_days)
    assert ten_days.day_count == 10
    assert result.snapshot.bookings_per_day == Decimal("0.2")


@pytest.mark.asyncio
async def test_restricted_scope_uses_same_company_join(aggregator, ten_days):
    result = await aggregator.compute_metrics(Scope(company_id=1, restricted_to_company=True), ten_days)
    assert result.snapshot.total_revenue == Decimal("1700")


@pytest.mark.asyncio
async def test_all_companies_counts_every_scanned_booking(aggregator, fleet_client, ten_days):
    result = await aggregator.compute_metrics(Scope.all_companies(), ten_days)
    snapshot = result.snapshot

    assert snapshot.company is None
    assert snapshot.total_bookings == 3
    assert snapshot.total_revenue == Decimal("11699")
    assert snapshot.total_active_vehicles == 3
    assert snapshot.revenue_per_vehicle == Decimal("3899.67")
    assert "company" not in fleet_client.calls


@pytest.mark.asyncio
async def test_empty_booking_set_yields_zeros(cache, ten_days):
    client = FakeTicketingClient(vehicles=[Vehicle(id=1, company_id=1, is_active=True)])
    result = await MetricsAggregator(client=client, cache=cache).compute_metrics(Scope.all_companies(), ten_days)
    snapshot = result.snapshot

    assert snapshot.total_revenue == 0
    assert snapshot.total_bookings == 0
    assert snapshot.average_fare == 0
    assert snapshot.revenue_per_vehicle == 0
    assert snapshot.bookings_per_day == 0
    assert snapshot.total_active_vehicles == 1


def test_zero_active_vehicles_gives_zero_revenue_per_vehicle(ten_days):
    bookings = [Booking(id=1, vehicle_id=9, fare=Decimal("40"), scanned_in_at=SCANNED)]
    vehicles = [Vehicle(id=9, company_id=1, is_active=False)]

    snapshot = derive_snapshot(ten_days, None, vehicles, bookings, company_scoped=False)

    assert snapshot.total_active_vehicles == 0
    assert snapshot.revenue_per_vehicle == 0
    assert snapshot.total_revenue == Decimal("40")


def test_unspecified_activity_counts_as_active(ten_days):
    vehicles = [Vehicle(id=1, company_id=1, is_active=None), Vehicle(id=2, company_id=1, is_active=False)]
    snapshot = derive_snapshot(ten_days, None, vehicles, [], company_scoped=True)
    assert snapshot.total_active_vehicles == 1


def test_single_day_range_counts_as_one_day():
    day = DateRange(date(2025, 3, 1), date(2025, 3, 1))
    bookings = [
        Booking(id=i, vehicle_id=1, fare=Decimal("10"), scanned_in_at=SCANNED) for i in range(3)
    ]
    snapshot = derive_snapshot(day, None, [Vehicle(id=1, company_id=1)], bookings, company_scoped=False)
    assert snapshot.bookings_per_day == Decimal("3")


def test_revenue_matches_manual_sum_and_average_fare(ten_days):
    vehicles = [Vehicle(id=1, company_id=1), Vehicle(id=2, company_id=1)]
    bookings = [
        Booking(id=1, vehicle_id=1, fare=Decimal("12.50"), scanned_in_at=SCANNED),
        Booking(id=2, vehicle_id=2, fare=Decimal("7.25"), has_parcel=True,
                parcel_fare=Decimal("3.10"), scanned_in_at=SCANNED),
        Booking(id=3, vehicle_id=1, fare=Decimal("9.99"), has_parcel=False,
                parcel_fare=Decimal("50"), scanned_in_at=SCANNED),
        Booking(id=4, vehicle_id=3, fare=Decimal("100"), scanned_in_at=SCANNED),
        Booking(id=5, vehicle_id=2, fare=Decimal("100"), scanned_in_at=None),
    ]

    snapshot = derive_snapshot(ten_days, None, vehicles, bookings, company_scoped=True)

    expected = Decimal("12.50") + Decimal("7.25") + Decimal("3.10") + Decimal("9.99")
    assert snapshot.total_revenue == expected
    assert snapshot.total_bookings == 3
    assert abs(snapshot.average_fare * snapshot.total_bookings - snapshot.total_revenue) <= Decimal("0.02")


@pytest.mark.asyncio
async def test_upstream_failure_degrades_to_warning(aggregator, fleet_client, ten_days):
    fleet_client.fail.add("bookings")

    result = await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    assert not result.success
    assert result.warnings == ["bookings unavailable: HTTP 503"]
    assert result.message == "bookings unavailable: HTTP 503"
    assert result.snapshot.total_revenue == 0
    assert result.snapshot.total_bookings == 0
    # Inputs that did load still contribute
    assert result.snapshot.total_active_vehicles == 2
    assert result.snapshot.company.id == 1


@pytest.mark.asyncio
async def test_every_source_failing_still_returns_snapshot(aggregator, fleet_client, ten_days):
    fleet_client.fail.update({"company", "vehicles", "bookings"})

    result = await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    assert len(result.warnings) == 3
    assert result.snapshot.company is None
    assert result.snapshot.total_revenue == 0


@pytest.mark.asyncio
async def test_failed_reads_are_not_cached(aggregator, fleet_client, ten_days):
    fleet_client.fail.add("bookings")
    await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    fleet_client.fail.clear()
    fleet_client.calls.clear()
    result = await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    assert result.success
    assert fleet_client.calls == ["bookings"]
    assert result.snapshot.total_revenue == Decimal("1700")


@pytest.mark.asyncio
async def test_identical_call_within_ttl_is_served_from_cache(aggregator, fleet_client, ten_days):
    first = await aggregator.compute_metrics(Scope(company_id=1), ten_days)
    fleet_client.calls.clear()

    second = await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    assert fleet_client.calls == []
    assert second.snapshot == first.snapshot
    assert second.snapshot.to_dict() == first.snapshot.to_dict()


@pytest.mark.asyncio
async def test_expired_entries_are_refetched(aggregator, fleet_client, clock, ten_days):
    await aggregator.compute_metrics(Scope(company_id=1), ten_days)
    fleet_client.calls.clear()

    clock.advance(301)
    await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    assert sorted(fleet_client.calls) == ["bookings", "company", "vehicles"]


@pytest.mark.asyncio
async def test_bookings_are_shared_across_company_scopes(aggregator, fleet_client, ten_days):
    await aggregator.compute_metrics(Scope(company_id=1), ten_days)
    fleet_client.calls.clear()

    result = await aggregator.compute_metrics(Scope(company_id=2), ten_days)

    assert "bookings" not in fleet_client.calls
    assert result.snapshot.total_revenue == Decimal("9999")


@pytest.mark.asyncio
async def test_force_refresh_bypasses_cache(aggregator, fleet_client, ten_days):
    await aggregator.compute_metrics(Scope.all_companies(), ten_days)
    fleet_client.calls.clear()

    await aggregator.compute_metrics(Scope.all_companies(), ten_days, force_refresh=True)

    assert sorted(fleet_client.calls) == ["bookings", "vehicles"]


@pytest.mark.asyncio
async def test_upstream_reads_are_issued_concurrently(cache, ten_days):
    client = FakeTicketingClient(delay=0.01)
    client.companies = []
    aggregator = MetricsAggregator(client=client, cache=cache)

    await aggregator.compute_metrics(Scope(company_id=1), ten_days)

    assert client.max_in_flight == 3


def test_injected_empty_cache_is_used(fleet_client):
    store = InMemoryCacheStore()
    assert len(store) == 0

    aggregator = MetricsAggregator(client=fleet_client, cache=store)

    assert aggregator.cache is store
    assert aggregator.client is fleet_client


@pytest.mark.asyncio
async def test_snapshot_is_written_to_injected_cache(fleet_client, ten_days):
    store = InMemoryCacheStore()

    await MetricsAggregator(client=fleet_client, cache=store).compute_metrics(Scope(company_id=1), ten_days)

    assert store.get(CacheKey.of("metrics", 1, ten_days.start, ten_days.end)) is not None


def test_unparseable_scan_timestamp_still_counts(ten_days):
    booking = Booking.from_api(
        {"id": 1, "vehicle_id": 1, "fare": "10", "scanned_in_at": "03/01/2025 08:30"}
    )

    assert booking.scanned_in_at is None
    assert booking.is_scanned_in

    snapshot = derive_snapshot(ten_days, None, [Vehicle(id=1, company_id=1)], [booking], company_scoped=True)
    assert snapshot.total_bookings == 1
    assert snapshot.total_revenue == Decimal("10")


@pytest.mark.parametrize("raw", [None, ""])
def test_missing_scan_timestamp_is_not_scanned(raw):
    booking = Booking.from_api({"id": 1, "vehicle_id": 1, "fare": "10", "scanned_in_at": raw})
    assert not booking.is_scanned_in
