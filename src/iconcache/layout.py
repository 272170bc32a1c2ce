"""Directory and file layout of the image cache.

    <cache_root>/images/index.json
    <cache_root>/images/<item_id>.png
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

from .logging import get_logger

LOGGER = get_logger(__name__)

IMAGES_DIRNAME = "images"
INDEX_FILENAME = "index.json"
IMAGE_SUFFIX = ".png"
IMAGES_DIR_MODE = 0o740
EMPTY_INDEX = "[]"


def sanitize_filename(name: str) -> str:
    safe = [c if c.isalnum() or c in {"-", "_", "."} else "_" for c in name]
    result = "".join(safe)
    if result in {"", ".", ".."}:
        return "_" * max(1, len(result))
    return result


def ensure_image_cache(cache_root: Path) -> Optional[Path]:
    """Create ``cache_root/images`` if needed and return it.

    Returns None when the directory cannot be created; callers treat that
    as a disabled cache.
    """
    images_dir = Path(cache_root) / IMAGES_DIRNAME
    if images_dir.is_dir():
        return images_dir
    if images_dir.exists():
        LOGGER.error("Image cache path %s exists but is not a directory; cache disabled", images_dir)
        return None
    try:
        images_dir.mkdir(mode=IMAGES_DIR_MODE, parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.error("Could not create image cache %s; cache disabled: %s", images_dir, exc)
        return None
    LOGGER.info("Created image cache %s", images_dir)
    return images_dir


def index_path_for(images_dir: Path) -> Path:
    return images_dir / INDEX_FILENAME


def ensure_index_file(images_dir: Path) -> Path:
    """Write an empty index when none exists yet and return its path."""
    index_path = index_path_for(images_dir)
    if not index_path.exists():
        index_path.write_text(EMPTY_INDEX, encoding="utf-8")
        LOGGER.info("Initialized empty index %s", index_path)
    return index_path


def image_path_for(images_dir: Path, item_id: str) -> Path:
    """Image file for ``item_id``.

    Ids that are already safe file names map to themselves. Any other id gets
    a short hash of the original appended, so two ids that sanitize alike
    still get separate files.
    """
    name = sanitize_filename(item_id)
    if name != item_id:
        digest = hashlib.sha1(item_id.encode("utf-8")).hexdigest()[:8]
        name = f"{name}-{digest}"
    return images_dir / f"{name}{IMAGE_SUFFIX}"
