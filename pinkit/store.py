"""
On-disk snapshot storage for pinkit.

A snapshot lives in two JSON files inside the cache directory, one for
pins and one for tags. Both files carry the ``sync_id`` of the pass
that wrote them, so a pair that does not belong together is detected
on load instead of being searched as if it were consistent.

Writes go to temporary files first and are promoted with ``os.replace``
only after both halves were written, so an interrupted sync never
leaves a truncated cache file behind.
"""
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pinkit.constants import CACHE_FORMAT_VERSION, PINS_CACHE_FILE, TAGS_CACHE_FILE
from pinkit.errors import CacheError, DecodeError, InvalidUrlError
from pinkit.models import Pin, Snapshot, Tag
from pinkit.utils import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes the pins/tags cache files."""

    def __init__(self, cache_dir: Union[str, Path]):
        """
        Initialize the store, creating the cache directory if needed.

        Args:
            cache_dir: Directory holding the cache files

        Raises:
            CacheError: If the directory cannot be created
        """
        self.cache_dir = Path(cache_dir).expanduser()
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"cannot create cache directory {self.cache_dir}: {e}") from e

        self.pins_file = self.cache_dir / PINS_CACHE_FILE
        self.tags_file = self.cache_dir / TAGS_CACHE_FILE

    def exists(self) -> bool:
        """Check whether a complete snapshot is on disk."""
        return self.pins_file.exists() and self.tags_file.exists()

    # =================
    # Writing
    # =================

    def _document(self, snapshot: Snapshot, items: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "version": CACHE_FORMAT_VERSION,
            "sync_id": snapshot.sync_id,
            "synced_at": format_timestamp(snapshot.synced_at),
            "items": items,
        }

    def _write_temp(self, target: Path, document: Dict[str, Any]) -> Path:
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=f".{target.name}.", suffix=".tmp")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        return tmp

    def _backup(self, path: Path) -> Optional[Path]:
        if not path.exists():
            return None
        backup = path.with_name(f".{path.name}.bak")
        shutil.copy2(path, backup)
        return backup

    def _restore(self, path: Path, backup: Optional[Path]) -> None:
        if backup is None:
            path.unlink(missing_ok=True)
        else:
            os.replace(backup, path)

    def save(self, snapshot: Snapshot) -> None:
        """
        Write a snapshot, replacing the previous one.

        Both files are written to temporary locations first; the live
        files are only replaced once both writes succeeded. The previous
        pins file is kept aside until the tags file is in place, so a
        failed promotion puts it back and the old snapshot stays loadable.

        Raises:
            CacheError: If either file cannot be written
        """
        documents = [
            (self.pins_file, self._document(snapshot, [p.to_dict() for p in snapshot.pins])),
            (self.tags_file, self._document(snapshot, [t.to_dict() for t in snapshot.tags])),
        ]

        staged: List[Path] = []
        backup: Optional[Path] = None
        try:
            for target, document in documents:
                staged.append(self._write_temp(target, document))
            pins_tmp, tags_tmp = staged

            backup = self._backup(self.pins_file)
            os.replace(pins_tmp, self.pins_file)
            try:
                os.replace(tags_tmp, self.tags_file)
            except OSError:
                # Leave the backup on disk if putting it back fails
                restoring, backup = backup, None
                self._restore(self.pins_file, restoring)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise CacheError(f"failed to write snapshot to {self.cache_dir}: {e}") from e
        finally:
            for tmp in staged:
                tmp.unlink(missing_ok=True)
            if backup is not None:
                backup.unlink(missing_ok=True)

        logger.info(
            f"Saved snapshot {snapshot.sync_id}: {len(snapshot.pins)} pins, "
            f"{len(snapshot.tags)} tags"
        )

    def clear(self) -> None:
        """Delete both cache files."""
        for path in (self.pins_file, self.tags_file):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise CacheError(f"cannot remove {path}: {e}") from e

    # =================
    # Reading
    # =================

    def _read_document(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise CacheError(f"cannot read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise CacheError(f"corrupt cache file {path}: {e}") from e

        if not isinstance(document, dict):
            raise CacheError(f"corrupt cache file {path}: expected an object")
        version = document.get("version")
        if version != CACHE_FORMAT_VERSION:
            raise CacheError(
                f"unsupported cache version {version!r} in {path} "
                f"(expected {CACHE_FORMAT_VERSION}); run a full sync"
            )
        if not isinstance(document.get("items"), list) or not isinstance(document.get("sync_id"), str):
            raise CacheError(f"corrupt cache file {path}: missing items or sync_id")
        return document

    def _decode_items(self, path: Path, items: List[Any], decode: Callable[[Any], Any]) -> List[Any]:
        try:
            return [decode(item) for item in items]
        except (DecodeError, InvalidUrlError) as e:
            raise CacheError(f"corrupt cache file {path}: {e}") from e

    def load(self) -> Optional[Snapshot]:
        """
        Load the snapshot from disk.

        Returns:
            The snapshot, or None if no sync has completed yet

        Raises:
            CacheError: If a file is unreadable, corrupt, from another
                format version, or the two files are from different syncs
        """
        if not self.exists():
            logger.debug(f"No snapshot in {self.cache_dir}")
            return None

        pins_doc = self._read_document(self.pins_file)
        tags_doc = self._read_document(self.tags_file)
        if pins_doc["sync_id"] != tags_doc["sync_id"]:
            raise CacheError(
                f"cache files in {self.cache_dir} belong to different syncs; run a full sync"
            )

        try:
            synced_at = parse_timestamp(pins_doc.get("synced_at"))
        except ValueError as e:
            raise CacheError(f"corrupt cache file {self.pins_file}: {e}") from e

        snapshot = Snapshot(
            pins=self._decode_items(self.pins_file, pins_doc["items"], Pin.from_dict),
            tags=self._decode_items(self.tags_file, tags_doc["items"], Tag.from_dict),
            synced_at=synced_at,
            sync_id=pins_doc["sync_id"],
        )
        logger.debug(f"Loaded snapshot {snapshot.sync_id}: {len(snapshot.pins)} pins, {len(snapshot.tags)} tags")
        return snapshot
