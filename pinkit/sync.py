"""
Synchronization between the remote service and the local snapshot.

``SnapshotRepository`` owns the in-memory copy of the snapshot and its
lifecycle: it starts UNLOADED, loads from the store on first access and
stays LOADED until it is replaced or invalidated.

``Pinboard`` ties the API client, the repository and the search engine
together: it decides when the snapshot is stale, performs full
synchronizations and answers searches. Mutations (add, delete, tag
rename/delete) go straight to the service and never touch the
snapshot; run ``update_cache()`` to see them locally.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pinkit.api import PinboardApi
from pinkit.config import PinkitConfig
from pinkit.errors import SnapshotMissingError
from pinkit.models import Pin, Snapshot, Tag
from pinkit.search import SearchEngine
from pinkit.store import SnapshotStore
from pinkit.utils import ensure_utc

logger = logging.getLogger(__name__)


class RepositoryState(Enum):
    """Lifecycle of the in-memory snapshot."""

    UNLOADED = "unloaded"
    LOADED = "loaded"


class SnapshotRepository:
    """Lazily loaded, wholesale-replaced view of the stored snapshot."""

    def __init__(self, store: SnapshotStore):
        self.store = store
        self.state = RepositoryState.UNLOADED
        self._snapshot: Optional[Snapshot] = None

    @property
    def is_loaded(self) -> bool:
        return self.state is RepositoryState.LOADED

    def get(self) -> Optional[Snapshot]:
        """
        Get the snapshot, loading it from disk on first access.

        Returns:
            The snapshot, or None if no sync has completed yet

        Raises:
            CacheError: If the stored snapshot cannot be read
        """
        if self.state is RepositoryState.UNLOADED:
            self._snapshot = self.store.load()
            self.state = RepositoryState.LOADED
        return self._snapshot

    def require(self) -> Snapshot:
        """
        Get the snapshot, failing if there is none.

        Raises:
            SnapshotMissingError: If no sync has completed yet
        """
        snapshot = self.get()
        if snapshot is None:
            raise SnapshotMissingError(
                f"no snapshot in {self.store.cache_dir}; run a sync first"
            )
        return snapshot

    def replace(self, snapshot: Snapshot) -> None:
        """Persist a new snapshot and make it the current one."""
        self.store.save(snapshot)
        self._snapshot = snapshot
        self.state = RepositoryState.LOADED

    def invalidate(self) -> None:
        """Forget the in-memory copy; the next access reloads from disk."""
        self._snapshot = None
        self.state = RepositoryState.UNLOADED


class Pinboard:
    """
    Offline-capable view of a Pinboard account.

    Args:
        api: Client for the remote service
        repository: Snapshot repository backing searches
        search: Search engine (defaults to exact, all-field search)
    """

    def __init__(
        self,
        api: PinboardApi,
        repository: SnapshotRepository,
        search: Optional[SearchEngine] = None,
    ):
        self.api = api
        self.repository = repository
        self.search = search or SearchEngine()

    @classmethod
    def from_config(cls, config: PinkitConfig) -> "Pinboard":
        """
        Build a Pinboard from configuration.

        Raises:
            ConfigError: If no API token is configured
            CacheError: If the cache directory cannot be created
        """
        api = PinboardApi(
            config.require_token(),
            base_url=config.base_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
        )
        repository = SnapshotRepository(SnapshotStore(config.cache_path()))
        search = SearchEngine(fuzzy=config.fuzzy_search, tags_only=config.tag_only_search)
        return cls(api, repository, search)

    # =================
    # Staleness
    # =================

    def is_cache_outdated(self, last_update: datetime) -> bool:
        """
        Check whether the remote changed after ``last_update``.

        Naive datetimes are treated as UTC. Equal timestamps are not stale.
        """
        return ensure_utc(last_update) < self.api.recent_update()

    def last_synced(self) -> Optional[datetime]:
        """Time of the sync that produced the current snapshot, if any."""
        snapshot = self.repository.get()
        return snapshot.synced_at if snapshot is not None else None

    def needs_update(self) -> bool:
        """True when there is no snapshot or the remote changed since the last sync."""
        synced_at = self.last_synced()
        if synced_at is None:
            return True
        return self.is_cache_outdated(synced_at)

    # =================
    # Synchronization
    # =================

    def update_cache(self) -> Snapshot:
        """
        Replace the snapshot with a full copy of the remote account.

        Both collections are fetched before anything is written, so a
        failed fetch leaves the previous snapshot untouched.

        Raises:
            ApiError: If either fetch fails
            CacheError: If the snapshot cannot be written
        """
        # Stamped with the server's clock, read before the fetch, so staleness
        # checks compare two server timestamps and a change made during the
        # fetch still counts as newer
        remote_update = self.api.recent_update()
        logger.info("Fetching all pins and tags")
        pins = self.api.all_pins()
        tags = self.api.tags_frequency()

        snapshot = Snapshot(pins=pins, tags=tags, synced_at=remote_update)
        self.repository.replace(snapshot)
        logger.info(f"Synchronized {len(pins)} pins and {len(tags)} tags")
        return snapshot

    # =================
    # Search
    # =================

    def search_items(self, query: str) -> Optional[List[Pin]]:
        """
        Search the snapshot's pins.

        Raises:
            SnapshotMissingError: If no sync has completed yet
            CacheError: If the snapshot cannot be read
        """
        return self.search.pins(self.repository.require().pins, query)

    def search_tags(self, query: str) -> Optional[List[Tag]]:
        """
        Search the snapshot's tags.

        Raises:
            SnapshotMissingError: If no sync has completed yet
            CacheError: If the snapshot cannot be read
        """
        return self.search.tags(self.repository.require().tags, query)

    # =================
    # Pass-through mutations
    # =================

    def add(self, pin: Pin) -> None:
        self.api.add_pin(pin)

    def delete(self, url: str) -> None:
        self.api.delete(url)

    def rename_tag(self, old: str, new: str) -> None:
        self.api.rename_tag(old, new)

    def delete_tag(self, tag: str) -> None:
        self.api.delete_tag(tag)

    def suggest_tags(self, url: str) -> List[str]:
        return self.api.suggest_tags(url)
