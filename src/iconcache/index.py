from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Union

from .enums import CacheStatus
from .layout import ensure_image_cache, ensure_index_file, image_path_for, index_path_for
from .logging import get_logger
from .metadata import extract_fav_key

LOGGER = get_logger(__name__)


@dataclass
class CacheEntry:
    """Cache record for one vault item."""

    item_id: str
    status: CacheStatus = CacheStatus.NONE
    fav_key: str = ""

    @property
    def is_pending(self) -> bool:
        return bool(self.fav_key) and self.status == CacheStatus.NONE

    def to_dict(self) -> dict:
        return {"itemId": self.item_id, "status": str(self.status), "fav": self.fav_key}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Optional["CacheEntry"]:
        """Build an entry from a stored record; key lookup ignores case."""
        fields = {str(key).lower(): value for key, value in raw.items()}
        item_id = fields.get("itemid")
        if not isinstance(item_id, str) or not item_id:
            return None
        fav_key = fields.get("fav")
        return cls(
            item_id=item_id,
            status=CacheStatus.parse(fields.get("status")),
            fav_key=fav_key if isinstance(fav_key, str) else "",
        )


class ImageCacheIndex:
    """In-memory view of ``images/index.json`` plus the image files beside it.

    Constructed once per process and passed to whoever needs it. When the
    images directory could not be created the index is disabled and every
    operation is a no-op.
    """

    def __init__(self, images_dir: Optional[Path], entries: Optional[List[CacheEntry]] = None) -> None:
        self.images_dir = Path(images_dir) if images_dir is not None else None
        self.entries: List[CacheEntry] = list(entries or [])

    @classmethod
    def open(cls, cache_root: Path) -> "ImageCacheIndex":
        """Ensure the cache layout under ``cache_root`` and load the index."""
        index = cls(ensure_image_cache(cache_root))
        index.load()
        return index

    @property
    def enabled(self) -> bool:
        return self.images_dir is not None

    @property
    def index_path(self) -> Optional[Path]:
        if self.images_dir is None:
            return None
        return index_path_for(self.images_dir)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(self.entries)

    def load(self) -> List[CacheEntry]:
        """(Re)read the index from disk, creating an empty one if missing.

        Unreadable or malformed documents load as an empty index.
        """
        self.entries = []
        if self.images_dir is None:
            return self.entries

        try:
            index_path = ensure_index_file(self.images_dir)
            raw_text = index_path.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.error("Failed to read index file in %s: %s", self.images_dir, exc)
            return self.entries

        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            LOGGER.error("Failed to parse index file %s, starting empty: %s", index_path, exc)
            return self.entries

        if not isinstance(payload, list):
            LOGGER.error("Index file %s is not a JSON array, starting empty", index_path)
            return self.entries

        for raw in payload:
            if not isinstance(raw, Mapping):
                continue
            entry = CacheEntry.from_dict(raw)
            if entry is not None:
                self.entries.append(entry)

        LOGGER.info("Read index %s with %d entries", index_path, len(self.entries))
        return self.entries

    def find_by_id(self, item_id: str) -> Optional[CacheEntry]:
        for entry in self.entries:
            if entry.item_id == item_id:
                return entry
        return None

    def _find_or_create(self, item_id: str) -> CacheEntry:
        entry = self.find_by_id(item_id)
        if entry is None:
            entry = CacheEntry(item_id=item_id)
            self.entries.append(entry)
        return entry

    def upsert_fav_key(self, item_id: str, fav_key: str) -> Optional[CacheEntry]:
        """Find or create the entry for ``item_id``; the first non-empty key wins."""
        if not self.enabled or not item_id:
            return None
        entry = self._find_or_create(item_id)
        if not entry.fav_key and fav_key:
            entry.fav_key = fav_key
        return entry

    def register_raw(self, item_id: str, raw: Union[str, bytes, Mapping[str, Any], None]) -> Optional[CacheEntry]:
        """Register an item's raw icon metadata as handed over by the vault."""
        if not self.enabled or not item_id:
            return None
        if raw is None or raw == "" or raw == b"":
            return None
        entry = self._find_or_create(item_id)
        if entry.fav_key:
            return entry
        return self.upsert_fav_key(item_id, extract_fav_key(raw))

    def pending(self) -> List[CacheEntry]:
        """Entries with a favicon key that were never attempted, in index order."""
        return [entry for entry in self.entries if entry.is_pending]

    def image_path(self, item_id: str) -> Optional[Path]:
        if self.images_dir is None:
            return None
        return image_path_for(self.images_dir, item_id)

    def resolve_image_path(self, item_id: str) -> Optional[Path]:
        """Return the cached image for ``item_id`` if it is marked and present.

        A stale ``exist`` entry whose file vanished resolves to None and is
        left untouched.
        """
        entry = self.find_by_id(item_id)
        if entry is None or entry.status != CacheStatus.EXIST:
            return None
        path = self.image_path(item_id)
        if path is not None and path.is_file():
            return path
        return None

    def write_image(self, item_id: str, data: bytes) -> Path:
        """Write the image payload for ``item_id``; raises OSError on failure."""
        path = self.image_path(item_id)
        if path is None:
            raise OSError("image cache is disabled")
        path.write_bytes(data)
        return path

    def merge_from_disk(self) -> int:
        """Fold statuses written by another process into the in-memory index.

        Entries still ``none`` here adopt a terminal status found on disk, and
        entries only present on disk are appended. Returns the number of
        entries changed or added.
        """
        if self.images_dir is None:
            return 0
        on_disk = ImageCacheIndex(self.images_dir)
        on_disk.load()
        changed = 0
        for stored in on_disk.entries:
            entry = self.find_by_id(stored.item_id)
            if entry is None:
                self.entries.append(stored)
                changed += 1
                continue
            if entry.status == CacheStatus.NONE and stored.status in CacheStatus.terminal_states():
                entry.status = stored.status
                if not entry.fav_key:
                    entry.fav_key = stored.fav_key
                changed += 1
        if changed:
            LOGGER.debug("Merged %d entries from %s", changed, self.index_path)
        return changed

    def to_json(self) -> str:
        return json.dumps([entry.to_dict() for entry in self.entries])

    def persist(self) -> bool:
        """Overwrite the index file with the in-memory index."""
        index_path = self.index_path
        if index_path is None:
            return False
        temp_path = index_path.with_suffix(index_path.suffix + ".tmp")
        try:
            temp_path.write_text(self.to_json(), encoding="utf-8")
            temp_path.replace(index_path)
        except OSError as exc:
            LOGGER.error("Failed to write index file %s: %s", index_path, exc)
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as cleanup_exc:
                LOGGER.debug("Could not remove %s: %s", temp_path, cleanup_exc)
            return False
        return True
