from datetime import date

import pytest

from transit_dash.errors import ExportFailure
from transit_dash.models.enums import ExportFormat
from transit_dash.models.metrics import DateRange, Scope
from transit_dash.services.export import export_filename, export_report

RANGE = DateRange(date(2025, 1, 1), date(2025, 1, 31))


def test_filename_for_company():
    assert export_filename(ExportFormat.EXCEL, RANGE, "Metro Express") == (
        "metro-express-2025-01-01-to-2025-01-31.xlsx"
    )


def test_filename_for_all_companies():
    assert export_filename(ExportFormat.CSV, RANGE) == "all-companies-2025-01-01-to-2025-01-31.csv"


@pytest.mark.asyncio
async def test_payload_is_passed_through(fleet_client):
    payload = await export_report(ExportFormat.CSV, RANGE, Scope(company_id=1), client=fleet_client)
    assert payload == fleet_client.export_payload


@pytest.mark.asyncio
async def test_upstream_failure_becomes_export_failure(fleet_client):
    fleet_client.fail.add("export")

    with pytest.raises(ExportFailure, match="Failed to export dashboard data: HTTP 503"):
        await export_report(ExportFormat.PDF, RANGE, Scope.all_companies(), client=fleet_client)

    assert fleet_client.calls == ["export"]


@pytest.mark.asyncio
async def test_empty_payload_is_a_failure(fleet_client):
    fleet_client.export_payload = b""

    with pytest.raises(ExportFailure):
        await export_report(ExportFormat.CSV, RANGE, Scope.all_companies(), client=fleet_client)
