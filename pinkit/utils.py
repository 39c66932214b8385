"""
Small helpers shared by the models, the API client and the store.
"""
import re
from datetime import datetime, timezone
from typing import Iterable, List
from urllib.parse import urlsplit

from pinkit.errors import InvalidUrlError

# RFC 3986 scheme syntax
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")

# Schemes that are meaningless without a host
HOST_SCHEMES = ("http", "https", "ftp", "ws", "wss")


def validate_url(url) -> str:
    """
    Check that a URL is absolute and parseable.

    Args:
        url: The URL to check

    Returns:
        The URL with surrounding whitespace removed

    Raises:
        InvalidUrlError: If the URL has no scheme, an invalid port or
            (for web schemes) no host
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(str(url), "empty URL")
    url = url.strip()
    try:
        parsed = urlsplit(url)
        # Accessing the port validates it
        parsed.port
    except ValueError as e:
        raise InvalidUrlError(url, str(e)) from e

    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme):
        raise InvalidUrlError(url, "missing scheme")
    if parsed.scheme.lower() in HOST_SCHEMES:
        host = parsed.hostname
        if not host or any(ch.isspace() for ch in host):
            raise InvalidUrlError(url, "missing or malformed host")
    return url


def split_tags(text: str) -> List[str]:
    """Split space-delimited tag text into a list of tags."""
    return text.split() if text else []


def join_tags(tags: Iterable[str]) -> str:
    """Join tags into space-delimited tag text, dropping blanks."""
    parts = []
    for tag in tags:
        if tag:
            parts.extend(tag.split())
    return " ".join(parts)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp as sent by the service (e.g. 2017-05-22T17:46:54Z).

    Raises:
        ValueError: If the value is not a string or not ISO-8601
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC timestamp with a Z suffix."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")
