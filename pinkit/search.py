"""
Search over a snapshot's pins and tags.

Two modes:

- exact: the query and every searched field are case-folded and the
  query must appear as a substring of the URL, title or tag text (pins)
  or of the name (tags).
- fuzzy: the query's characters must appear in order, with anything in
  between ("dtm" matches "datetime"). Each character is escaped before
  it goes into the pattern, so user input is always taken literally.

Results keep the collection's order. An empty result is reported as
None rather than an empty list.
"""
import re
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, TypeVar

from pinkit.models import Pin, Tag

T = TypeVar("T")


def build_fuzzy_pattern(query: str) -> Pattern[str]:
    """
    Compile an ordered-subsequence pattern: "dtm" -> d[^t]*t[^m]*m.

    Each gap excludes the character that closes it, so from any start
    position there is only one way to match and the search stays linear
    in the length of the text. The pattern is case-insensitive and
    unanchored.
    """
    if not query:
        return re.compile("")
    parts = [re.escape(query[0])]
    for ch in query[1:]:
        escaped = re.escape(ch)
        parts.append(f"[^{escaped}]*{escaped}")
    return re.compile("".join(parts), re.IGNORECASE)


def _collect(items: Iterable[T], predicate: Callable[[T], bool]) -> Optional[List[T]]:
    hits = [item for item in items if predicate(item)]
    return hits or None


def _pin_fields(pin: Pin, tags_only: bool) -> List[str]:
    return [pin.tags] if tags_only else pin.searchable_fields()


def search_pins(
    pins: Sequence[Pin],
    query: str,
    fuzzy: bool = False,
    tags_only: bool = False,
) -> Optional[List[Pin]]:
    """
    Find pins matching a query.

    Args:
        pins: Pins to search
        query: Search text
        fuzzy: Use ordered-subsequence matching instead of substring matching
        tags_only: Match against tag text only

    Returns:
        Matching pins in their original order, or None if nothing matched
    """
    if fuzzy:
        pattern = build_fuzzy_pattern(query)
        return _collect(pins, lambda p: any(pattern.search(f) for f in _pin_fields(p, tags_only)))

    # TODO: store case-folded copies of the searchable fields in the snapshot so each query does not re-fold them
    if not tags_only:
        return _collect(pins, lambda p: p.contains(query))

    q = query.casefold()
    return _collect(pins, lambda p: q in p.tags.casefold())


def search_tags(tags: Sequence[Tag], query: str, fuzzy: bool = False) -> Optional[List[Tag]]:
    """
    Find tags whose name matches a query.

    Returns:
        Matching tags in their original order, or None if nothing matched
    """
    if fuzzy:
        pattern = build_fuzzy_pattern(query)
        return _collect(tags, lambda t: pattern.search(t.name) is not None)

    q = query.casefold()
    return _collect(tags, lambda t: q in t.name.casefold())


class SearchEngine:
    """Search functions bound to a mode taken from configuration."""

    def __init__(self, fuzzy: bool = False, tags_only: bool = False):
        self.fuzzy = fuzzy
        self.tags_only = tags_only

    def pins(self, pins: Sequence[Pin], query: str) -> Optional[List[Pin]]:
        return search_pins(pins, query, fuzzy=self.fuzzy, tags_only=self.tags_only)

    def tags(self, tags: Sequence[Tag], query: str) -> Optional[List[Tag]]:
        return search_tags(tags, query, fuzzy=self.fuzzy)
