"""
Dashboard Errors

Caller errors (MisconfiguredAccount, InvalidScopeRequest, InvalidDateRange)
abort a request before any upstream call is made. UpstreamUnavailable is
recovered inside the aggregator and reported as a warning. ExportFailure is
surfaced directly to the caller.
"""

from typing import Optional


class DashboardError(Exception):
    """Base class for dashboard engine errors"""


class MisconfiguredAccount(DashboardError):
    """A company-restricted caller has no assigned company"""


class InvalidScopeRequest(DashboardError):
    """Requested company id is neither 'all' nor an integer"""


class InvalidDateRange(DashboardError):
    """start > end, or a bound failed to parse"""


class UpstreamUnavailable(DashboardError):
    """An individual ticketing API call failed"""

    def __init__(self, resource: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{resource} unavailable: {message}")
        self.resource = resource
        self.message = message
        self.status_code = status_code


class ExportFailure(DashboardError):
    """Export payload could not be obtained"""
