"""
Exception types shared across the router server
"""

from typing import Optional


class RouterServerError(Exception):
    """Base class for failures the server reports to callers"""


class ConfigurationError(RouterServerError):
    """Configuration file is missing or invalid"""


class LandingPageUnavailable(RouterServerError):
    """The router landing page could not be fetched, so there is nothing to analyze"""

    def __init__(self, address: str, evidence: str, http_status: Optional[int] = None):
        super().__init__(f"Could not fetch landing page at {address}: {evidence}")
        self.address = address
        self.evidence = evidence
        self.http_status = http_status
