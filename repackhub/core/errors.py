"""
Error types shared by the fetch, aggregation and web layers.
"""
from typing import Optional


class RepackHubError(Exception):
    """Base error for RepackHub services"""


class SiteFetchError(RepackHubError):
    """A listing request to a source site failed."""

    def __init__(self, site_name: str, status_code: Optional[int] = None, reason: str = ""):
        self.site_name = site_name
        self.status_code = status_code
        self.reason = reason
        if status_code is not None:
            message = f"{site_name} API returned {status_code}: {reason}".rstrip(": ")
        else:
            message = f"{site_name} API request failed: {reason}"
        super().__init__(message)


class ChallengeSolverError(RepackHubError):
    """The challenge-solving service did not yield a clearance credential."""


class AggregationError(RepackHubError):
    """Every selected site failed."""
