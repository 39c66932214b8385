"""
pinkit - Pinboard toolkit

Keeps a local snapshot of a Pinboard account for offline search.

Design Principles:
- One full snapshot per sync (the service has no delta API)
- Two cache files written together, never half-updated
- Every remote quirk decoded into a typed result or a typed error
- Exact or fuzzy search, results in collection order

Example Usage:
    >>> from pinkit import Pinboard, get_config
    >>> pb = Pinboard.from_config(get_config())
    >>> if pb.needs_update():
    ...     pb.update_cache()
    >>> pb.search_items("python")
"""

__version__ = "0.3.0"

# Configuration
from pinkit.config import PinkitConfig, get_config, init_config

# Models
from pinkit.models import Pin, Tag, Snapshot

# Remote client
from pinkit.api import PinboardApi

# Storage and search
from pinkit.store import SnapshotStore
from pinkit.search import SearchEngine, build_fuzzy_pattern, search_pins, search_tags

# Synchronizer
from pinkit.sync import Pinboard, SnapshotRepository

# Errors
from pinkit.errors import (
    PinkitError,
    ConfigError,
    CacheError,
    SnapshotMissingError,
    InvalidUrlError,
    ApiError,
    InvalidEndpointError,
    NetworkError,
    ServerError,
    UnrecognizedResponseError,
    DecodeError,
)

__all__ = [
    # Config
    "PinkitConfig",
    "get_config",
    "init_config",
    # Models
    "Pin",
    "Tag",
    "Snapshot",
    # Components
    "PinboardApi",
    "SnapshotStore",
    "SearchEngine",
    "build_fuzzy_pattern",
    "search_pins",
    "search_tags",
    "Pinboard",
    "SnapshotRepository",
    # Errors
    "PinkitError",
    "ConfigError",
    "CacheError",
    "SnapshotMissingError",
    "InvalidUrlError",
    "ApiError",
    "InvalidEndpointError",
    "NetworkError",
    "ServerError",
    "UnrecognizedResponseError",
    "DecodeError",
]
