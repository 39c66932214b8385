"""
Exception hierarchy for pinkit.

Every failure that can be triggered by remote data, the network or the
local cache is raised as a subclass of PinkitError so callers can catch
the whole family or a single kind.
"""
from typing import Any, Optional


class PinkitError(Exception):
    """Base class for all pinkit errors."""

    pass


class ConfigError(PinkitError):
    """Raised when configuration is missing or invalid."""

    pass


class CacheError(PinkitError):
    """Raised when the local snapshot cannot be read or written."""

    pass


class SnapshotMissingError(CacheError):
    """Raised when a search needs a snapshot but none was synchronized yet."""

    pass


class InvalidUrlError(PinkitError, ValueError):
    """Raised when a bookmark URL cannot be parsed."""

    def __init__(self, url: str, reason: str = "invalid URL"):
        super().__init__(f"{reason}: {url!r}")
        self.url = url
        self.reason = reason


class ApiError(PinkitError):
    """Base class for errors talking to the remote service."""

    pass


class InvalidEndpointError(ApiError):
    """Raised when an endpoint URL cannot be built from the base URL."""

    pass


class NetworkError(ApiError):
    """Raised on transport failures (connection errors, timeouts)."""

    pass


class ServerError(ApiError):
    """
    Raised when the server reports a failure.

    Either through a non-success HTTP status (message is the status's
    reason phrase) or through a result field in the response body
    (message is the remote's literal text, e.g. "item not found").
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnrecognizedResponseError(ApiError):
    """Raised when a response has none of the shapes the protocol allows."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class DecodeError(ApiError):
    """Raised when a response body does not decode into the expected schema."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload
