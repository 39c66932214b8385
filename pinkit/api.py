"""
Client for the Pinboard v1 JSON API.

Handles authentication, response decoding and the protocol's quirks:

- Mutations report their outcome in either ``result_code`` or ``result``.
- ``tags/get`` returns a ``{name: count}`` object, or ``[]`` when the
  account has no tags.
- ``posts/suggest`` returns a list of differently-shaped objects, only
  one of which carries the ``popular`` tags.
- ``posts/all`` can contain records whose URL does not parse.

Each accepted response shape is a small class with a ``decode``
classmethod that returns an instance, or None when the payload has a
different shape, so every shape can be tested on its own. Errors are
raised as subclasses of ``pinkit.errors.ApiError``; nothing here retries.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, quote_plus, urljoin, urlsplit

import requests

from pinkit import __version__
from pinkit.constants import (
    DEFAULT_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
    ENDPOINT_ADD_PIN,
    ENDPOINT_ALL_PINS,
    ENDPOINT_DELETE_PIN,
    ENDPOINT_LAST_UPDATE,
    ENDPOINT_SUGGEST,
    ENDPOINT_TAGS_DELETE,
    ENDPOINT_TAGS_GET,
    ENDPOINT_TAGS_RENAME,
    RESPONSE_FORMAT,
    RESULT_DONE,
)
from pinkit.errors import (
    ConfigError,
    DecodeError,
    InvalidEndpointError,
    InvalidUrlError,
    NetworkError,
    ServerError,
    UnrecognizedResponseError,
)
from pinkit.models import Pin, Tag
from pinkit.utils import parse_timestamp, validate_url

logger = logging.getLogger(__name__)


def reason_phrase(status_code: int) -> str:
    """Canonical reason phrase for an HTTP status code."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return f"HTTP {status_code}"


# =================
# Mutation results
# =================

@dataclass(frozen=True)
class ResultCodeResponse:
    """``{"result_code": "..."}`` as returned by the posts endpoints."""

    FIELD = "result_code"
    value: str

    @classmethod
    def decode(cls, payload: Any) -> Optional["ResultCodeResponse"]:
        if isinstance(payload, dict) and isinstance(payload.get(cls.FIELD), str):
            return cls(payload[cls.FIELD])
        return None


@dataclass(frozen=True)
class ResultResponse:
    """``{"result": "..."}`` as returned by the tags endpoints."""

    FIELD = "result"
    value: str

    @classmethod
    def decode(cls, payload: Any) -> Optional["ResultResponse"]:
        if isinstance(payload, dict) and isinstance(payload.get(cls.FIELD), str):
            return cls(payload[cls.FIELD])
        return None


# Order matters: the first non-empty field wins the error message
RESULT_VARIANTS = (ResultCodeResponse, ResultResponse)


@dataclass(frozen=True)
class ApiResult:
    """Normalized outcome of a mutation."""

    ok: bool
    message: Optional[str] = None


def decode_result(payload: Any) -> ApiResult:
    """
    Normalize a mutation response.

    Success if any result field equals "done"; otherwise the message is
    the first non-empty result field.

    Raises:
        UnrecognizedResponseError: If no result field is present, or all are empty
    """
    variants = [v for v in (cls.decode(payload) for cls in RESULT_VARIANTS) if v is not None]
    if not variants:
        raise UnrecognizedResponseError("Unrecognized response from server: no result field", payload=payload)

    if any(v.value == RESULT_DONE for v in variants):
        return ApiResult(ok=True)

    for v in variants:
        if v.value:
            return ApiResult(ok=False, message=v.value)

    raise UnrecognizedResponseError("Unrecognized response from server: empty result field", payload=payload)


# =================
# Tag frequencies
# =================

@dataclass(frozen=True)
class TagFrequencyMap:
    """``{"python": 12, "rust": 3}``: the usual ``tags/get`` response."""

    tags: Tuple[Tag, ...]

    @classmethod
    def decode(cls, payload: Any) -> Optional["TagFrequencyMap"]:
        if not isinstance(payload, dict):
            return None
        return cls(tuple(Tag.from_count(name, count) for name, count in payload.items()))


@dataclass(frozen=True)
class EmptyTagList:
    """``[]``: what ``tags/get`` returns for an account without tags."""

    tags: Tuple[Tag, ...] = ()

    @classmethod
    def decode(cls, payload: Any) -> Optional["EmptyTagList"]:
        if not isinstance(payload, list):
            return None
        if payload:
            raise DecodeError(
                f"tag frequency list must be empty, got {len(payload)} entries", payload=payload
            )
        return cls()


TAG_FREQUENCY_VARIANTS = (TagFrequencyMap, EmptyTagList)


def decode_tag_frequencies(payload: Any) -> List[Tag]:
    """
    Decode a ``tags/get`` response into tags.

    Raises:
        DecodeError: If the payload matches no known shape or holds invalid counts
    """
    for variant in TAG_FREQUENCY_VARIANTS:
        decoded = variant.decode(payload)
        if decoded is not None:
            return list(decoded.tags)
    raise DecodeError(
        f"tag frequencies must be an object or an empty list, got {type(payload).__name__}",
        payload=payload,
    )


# =================
# Other payloads
# =================

def decode_suggestions(payload: Any) -> List[str]:
    """
    Extract the popular tags from a ``posts/suggest`` response.

    The response is a list such as ``[{"popular": [...]}, {"recommended": [...]}]``;
    the first entry with a non-null ``popular`` field wins.

    Raises:
        UnrecognizedResponseError: If no entry has a ``popular`` field
        DecodeError: If the ``popular`` field is not a list of strings
    """
    if isinstance(payload, list):
        for entry in payload:
            if not isinstance(entry, dict) or entry.get("popular") is None:
                continue
            popular = entry["popular"]
            if not isinstance(popular, list) or not all(isinstance(t, str) for t in popular):
                raise DecodeError("'popular' must be a list of strings", payload=payload)
            return list(popular)
    raise UnrecognizedResponseError("Unrecognized response from server: no popular tags", payload=payload)


def decode_pins(payload: Any) -> Tuple[List[Pin], int]:
    """
    Decode a ``posts/all`` response.

    Records whose URL cannot be parsed are dropped and counted.

    Returns:
        Tuple of (pins, number of dropped records)

    Raises:
        DecodeError: If the payload is not a list, or a record has an invalid schema
    """
    if not isinstance(payload, list):
        raise DecodeError(f"expected a list of pins, got {type(payload).__name__}", payload=payload)

    pins = []
    skipped = 0
    for record in payload:
        try:
            pins.append(Pin.from_api(record))
        except InvalidUrlError as e:
            skipped += 1
            logger.debug(f"Dropping pin with unparsable URL: {e}")
    return pins, skipped


def decode_update_time(payload: Any) -> datetime:
    """
    Decode a ``posts/update`` response.

    Raises:
        DecodeError: If ``update_time`` is missing or not an ISO-8601 timestamp
    """
    if not isinstance(payload, dict) or "update_time" not in payload:
        raise DecodeError("response has no 'update_time' field", payload=payload)
    try:
        return parse_timestamp(payload["update_time"])
    except ValueError as e:
        raise DecodeError(f"invalid update_time: {e}", payload=payload) from e


# =================
# Client
# =================

class PinboardApi:
    """
    Thin, stateless wrapper over the Pinboard HTTP API.

    Every request is a GET carrying ``format=json`` and the auth token.
    The instance holds only configuration and a ``requests.Session``,
    so independent calls do not affect one another.
    """

    def __init__(
        self,
        auth_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        user_agent: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            auth_token: API token in ``user:TOKEN`` form
            base_url: Root URL of the API
            timeout: Request timeout in seconds
            user_agent: Custom user agent string
            session: Session to reuse (a new one is created if omitted)
        """
        if not auth_token:
            raise ConfigError("an API token is required (set api_token or PINKIT_API_TOKEN)")
        self.auth_token = auth_token
        self.base_url = base_url
        self.timeout = timeout
        self.user_agent = user_agent or f"pinkit/{__version__}"
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})

    def __enter__(self) -> "PinboardApi":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def endpoint_url(self, path: str) -> str:
        """
        Build the absolute URL of an endpoint.

        Raises:
            InvalidEndpointError: If the base URL and path do not form an http(s) URL
        """
        base = self.base_url if self.base_url.endswith("/") else self.base_url + "/"
        try:
            url = urljoin(base, path)
            parsed = urlsplit(url)
        except ValueError as e:
            raise InvalidEndpointError(f"cannot build endpoint {path!r} from {self.base_url!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidEndpointError(f"cannot build endpoint {path!r} from {self.base_url!r}")
        return url

    def _redact(self, text: str) -> str:
        """Mask the auth token wherever it appears in text, raw or URL-encoded."""
        for form in {self.auth_token, quote(self.auth_token, safe=""), quote_plus(self.auth_token)}:
            text = text.replace(form, "********")
        return text

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        """
        Issue a GET request and decode its JSON body.

        Raises:
            InvalidEndpointError, NetworkError, ServerError, DecodeError
        """
        url = self.endpoint_url(path)
        query = {"format": RESPONSE_FORMAT, "auth_token": self.auth_token}
        if params:
            query.update(params)

        logger.debug(f"GET {url} {params or {}}")
        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.Timeout as e:
            raise NetworkError(f"Request timeout: {path}") from e
        except requests.RequestException as e:
            raise NetworkError(f"Connection error: {self._redact(str(e))}") from e

        status = response.status_code
        if not 200 <= status < 300:
            logger.debug(f"{path} failed with HTTP {status}")
            raise ServerError(reason_phrase(status), status_code=status)

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"response from {path} is not valid JSON: {e}", payload=response.text) from e

    def _mutate(self, path: str, params: Dict[str, str]) -> None:
        result = decode_result(self._get(path, params))
        if not result.ok:
            raise ServerError(result.message)

    def all_pins(self) -> List[Pin]:
        """Fetch every pin of the account."""
        pins, skipped = decode_pins(self._get(ENDPOINT_ALL_PINS))
        if skipped:
            logger.warning(f"Skipped {skipped} pins with unparsable URLs")
        logger.debug(f"Fetched {len(pins)} pins")
        return pins

    def tags_frequency(self) -> List[Tag]:
        """Fetch all tags with their usage counts."""
        return decode_tag_frequencies(self._get(ENDPOINT_TAGS_GET))

    def add_pin(self, pin: Pin) -> None:
        """Add a pin, replacing any existing pin for the same URL."""
        self._mutate(ENDPOINT_ADD_PIN, {
            "url": pin.url,
            "description": pin.title,
            "extended": pin.extended or "",
            "tags": pin.tags,
            "shared": pin.shared,
            "toread": pin.toread,
            "replace": "yes",
        })

    def delete(self, url: str) -> None:
        """Delete the pin for a URL."""
        self._mutate(ENDPOINT_DELETE_PIN, {"url": validate_url(url)})

    def rename_tag(self, old: str, new: str) -> None:
        self._mutate(ENDPOINT_TAGS_RENAME, {"old": old, "new": new})

    def delete_tag(self, tag: str) -> None:
        self._mutate(ENDPOINT_TAGS_DELETE, {"tag": tag})

    def suggest_tags(self, url: str) -> List[str]:
        """Popular tags other users chose for a URL."""
        return decode_suggestions(self._get(ENDPOINT_SUGGEST, {"url": validate_url(url)}))

    def recent_update(self) -> datetime:
        """Time of the account's most recent change (UTC)."""
        return decode_update_time(self._get(ENDPOINT_LAST_UPDATE))
