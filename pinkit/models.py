"""
Data models for pinkit.

Pins and tags are plain dataclasses. Field names follow the remote
service's vocabulary where it is unambiguous; the service's confusing
names (``href`` for the URL, ``description`` for the title) are only
used in the serialized form.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pinkit.errors import DecodeError
from pinkit.utils import (
    ensure_utc,
    format_timestamp,
    join_tags,
    parse_timestamp,
    split_tags,
    utc_now,
    validate_url,
)

YES = "yes"
NO = "no"


def _yes_no(flag: bool) -> str:
    return YES if flag else NO


def _optional_str(record: Dict[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    if value is None or isinstance(value, str):
        return value
    raise DecodeError(f"field {key!r} must be a string, got {type(value).__name__}", payload=record)


def _str(record: Dict[str, Any], key: str, default: str) -> str:
    value = _optional_str(record, key)
    return default if value is None else value


@dataclass
class Pin:
    """
    A bookmark saved on the remote service.

    Attributes:
        url: The bookmarked URL (serialized as ``href``)
        title: Bookmark title (serialized as ``description``)
        tags: Space-delimited tag text
        shared: "yes" for public pins, "no" for private ones
        toread: "yes" if the pin is marked to-read
        extended: Optional extended description
        time: Creation timestamp (naive values are taken as UTC)
        meta: Opaque change-detection value from the service
        hash: Opaque URL hash from the service
    """

    url: str
    title: str
    tags: str = ""
    shared: str = YES
    toread: str = NO
    extended: Optional[str] = None
    time: datetime = field(default_factory=utc_now)
    meta: Optional[str] = None
    hash: Optional[str] = None

    def __post_init__(self):
        self.time = ensure_utc(self.time)

    @classmethod
    def new(
        cls,
        url: str,
        title: str,
        tags: Iterable[str] = (),
        private: bool = False,
        toread: bool = False,
        extended: Optional[str] = None,
    ) -> "Pin":
        """
        Create a pin from user input.

        Raises:
            InvalidUrlError: If the URL cannot be parsed
        """
        return cls(
            url=validate_url(url),
            title=title,
            tags=join_tags(tags),
            shared=_yes_no(not private),
            toread=_yes_no(toread),
            extended=extended,
        )

    @classmethod
    def from_api(cls, record: Dict[str, Any]) -> "Pin":
        """
        Decode one record of a ``posts/all`` response.

        Raises:
            InvalidUrlError: If the record's URL cannot be parsed
            DecodeError: If the record is not an object or a field has the wrong type
        """
        if not isinstance(record, dict):
            raise DecodeError(f"pin record must be an object, got {type(record).__name__}", payload=record)
        if "href" not in record:
            raise DecodeError("pin record has no 'href' field", payload=record)

        href = record["href"]
        url = validate_url(href)

        raw_time = record.get("time")
        if raw_time is None:
            time = utc_now()
        else:
            try:
                time = parse_timestamp(raw_time)
            except ValueError as e:
                raise DecodeError(f"invalid pin time {raw_time!r}: {e}", payload=record) from e

        return cls(
            url=url,
            title=_str(record, "description", ""),
            tags=_str(record, "tags", ""),
            shared=_str(record, "shared", YES),
            toread=_str(record, "toread", NO),
            extended=_optional_str(record, "extended"),
            time=time,
            meta=_optional_str(record, "meta"),
            hash=_optional_str(record, "hash"),
        )

    # Cached pins use the same schema as the remote records
    from_dict = from_api

    def to_dict(self) -> Dict[str, Any]:
        return {
            "href": self.url,
            "description": self.title,
            "extended": self.extended,
            "meta": self.meta,
            "hash": self.hash,
            "time": format_timestamp(self.time),
            "shared": self.shared,
            "toread": self.toread,
            "tags": self.tags,
        }

    @property
    def tag_list(self) -> List[str]:
        """Parsed tags; always consistent with ``tags``."""
        return split_tags(self.tags)

    def set_tags(self, tags: Iterable[str]) -> None:
        """Replace the pin's tags."""
        self.tags = join_tags(tags)

    @property
    def is_private(self) -> bool:
        return self.shared != YES

    @property
    def is_toread(self) -> bool:
        return self.toread == YES

    def searchable_fields(self) -> List[str]:
        return [self.url, self.title, self.tags]

    def contains(self, query: str) -> bool:
        """Case-insensitive substring match against URL, title and tag text."""
        q = query.casefold()
        return any(q in text.casefold() for text in self.searchable_fields())


@dataclass
class Tag:
    """A tag and the number of pins carrying it."""

    name: str
    count: int = 0

    @classmethod
    def from_count(cls, name: Any, count: Any) -> "Tag":
        """
        Build a tag from one ``name: count`` entry.

        Counts may arrive as integers or numeric strings.

        Raises:
            DecodeError: If the name is not a string or the count is not a non-negative integer
        """
        if not isinstance(name, str):
            raise DecodeError(f"tag name must be a string, got {type(name).__name__}", payload=name)
        if isinstance(count, bool):
            raise DecodeError(f"invalid count for tag {name!r}: {count!r}", payload=count)
        if isinstance(count, str):
            try:
                count = int(count.strip())
            except ValueError as e:
                raise DecodeError(f"invalid count for tag {name!r}: {count!r}", payload=count) from e
        if not isinstance(count, int) or count < 0:
            raise DecodeError(f"invalid count for tag {name!r}: {count!r}", payload=count)
        return cls(name=name, count=count)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        if not isinstance(data, dict) or "name" not in data:
            raise DecodeError("tag entry must be an object with a 'name'", payload=data)
        return cls.from_count(data["name"], data.get("count", 0))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "count": self.count}


@dataclass
class Snapshot:
    """
    All pins and tags captured by one synchronization pass.

    Both halves are written and read together; ``sync_id`` ties the two
    cache files to the pass that produced them.
    """

    pins: List[Pin] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    synced_at: datetime = field(default_factory=utc_now)
    sync_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        self.synced_at = ensure_utc(self.synced_at)
