"""
Domain exceptions for the Spot Price Exporter.
Provides clear, typed exceptions for fetch, configuration and request errors.
"""

from typing import Optional


class SpotPriceError(Exception):
    """Base exception for all Spot Price Exporter errors."""
    pass


class ConfigurationError(SpotPriceError):
    """Raised at startup when the configuration cannot be used."""
    pass


class UnknownRegionError(SpotPriceError):
    """Raised when a request names a region that is not configured."""
    pass


class FetchError(SpotPriceError):
    """Base for failures of a single upstream fetch attempt for one region."""

    kind = "unknown"


class TransportError(FetchError):
    """Raised when the upstream cannot be reached or the request times out."""

    kind = "transport"


class UpstreamStatusError(FetchError):
    """Raised when the upstream answers with a non-success HTTP status."""

    kind = "status"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(FetchError):
    """Raised when the upstream body is malformed or has an unexpected shape."""

    kind = "parse"


class BucketingError(FetchError):
    """Raised when a timestamp cannot be converted to an hour bucket."""

    kind = "bucketing"
