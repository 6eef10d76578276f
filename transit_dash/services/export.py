"""
Report Export

Triggers the upstream export endpoint and passes its binary payload through
unchanged. Encoding (CSV/Excel/PDF) is entirely upstream.
"""

import logging
import re
from typing import Optional

from transit_dash.errors import ExportFailure, UpstreamUnavailable
from transit_dash.models.enums import ExportFormat
from transit_dash.models.metrics import DateRange, Scope
from transit_dash.services.ticketing_client import TicketingClient, get_ticketing_client

logger = logging.getLogger(__name__)


def export_filename(export_format: ExportFormat, date_range: DateRange, company_name: Optional[str] = None) -> str:
    """<company-slug>-<start>-to-<end>.<ext>; all-companies when unscoped"""
    if company_name:
        slug = re.sub(r"[^a-z0-9]+", "-", company_name.lower()).strip("-") or "company"
    else:
        slug = "all-companies"
    return f"{slug}-{date_range.start.isoformat()}-to-{date_range.end.isoformat()}.{export_format.extension}"


async def export_report(
    export_format: ExportFormat,
    date_range: DateRange,
    scope: Scope,
    client: Optional[TicketingClient] = None,
) -> bytes:
    """Fetch the export payload. Raises ExportFailure; never retried."""
    client = client if client is not None else get_ticketing_client()
    try:
        payload = await client.export_report(export_format, date_range, scope.company_id)
    except UpstreamUnavailable as e:
        logger.error(f"[Export] {export_format.value} export failed: {e.message}")
        raise ExportFailure(f"Failed to export dashboard data: {e.message}") from e

    if not payload:
        raise ExportFailure("Failed to generate export file: empty payload")
    return payload
