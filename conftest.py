"""Global pytest configuration."""

import logging
from pathlib import Path

import pytest

from iconcache.index import ImageCacheIndex

pytest_plugins = ["tests.fixtures.provider"]


@pytest.fixture(autouse=True)
def _reset_iconcache_logger():
    """Drop handlers installed by configure_logging so they never outlive a test."""
    yield
    logger = logging.getLogger("iconcache")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def cache_root(tmp_path: Path) -> Path:
    """Provide an empty cache root; nothing below it exists yet."""
    return tmp_path / "workflow_cache"


@pytest.fixture()
def index(cache_root: Path) -> ImageCacheIndex:
    """Open a fresh index under ``cache_root``."""
    return ImageCacheIndex.open(cache_root)
