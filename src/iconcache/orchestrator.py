"""
Batch download of pending favicons.

Runs in a detached background process. Entries are handled one at a time;
every entry ends in EXIST or SKIP and is never attempted again.
"""

from __future__ import annotations

from functools import partial
from typing import Optional

from .candidates import build_candidate_urls
from .config import NetworkConfig
from .enums import CacheStatus
from .fetcher import Fetcher, fetch_first
from .index import ImageCacheIndex
from .logging import get_logger
from .stats import CacheRunStats

LOGGER = get_logger(__name__)


def cache_images(
    index: ImageCacheIndex,
    *,
    fetch: Optional[Fetcher] = None,
    network: Optional[NetworkConfig] = None,
    stats: Optional[CacheRunStats] = None,
) -> CacheRunStats:
    """
    Download every pending favicon in ``index``.

    Args:
        index: Loaded cache index; mutated in place and persisted.
        fetch: Candidate fetcher, defaults to ``fetch_first`` bound to the
            network timeout.
        network: Provider settings used to build candidate URLs.
        stats: Collector to report into; a fresh one is created if omitted.

    Returns:
        The statistics collector for this run.

    The index is written after each image that lands on disk and once more
    at the end. Failed entries are only written by that final persist.
    """
    stats = stats if stats is not None else CacheRunStats()
    network = network or NetworkConfig()

    if not index.enabled:
        LOGGER.error("No image cache directory, skipping batch run")
        stats.finish_run(status="disabled")
        return stats

    if fetch is None:
        fetch = partial(fetch_first, timeout_s=network.timeout_s)

    items = index.pending()
    stats.start_run(len(items))
    LOGGER.info("Checking %d pending items", len(items))

    for entry in items:
        urls = build_candidate_urls(entry.fav_key, network)
        result = fetch(urls)
        if not result.ok or result.content is None:
            LOGGER.info("No favicon for %s (%s): %s", entry.item_id, entry.fav_key, result.error)
            entry.status = CacheStatus.SKIP
            stats.report_fetch_failed(entry.item_id)
            continue

        try:
            path = index.write_image(entry.item_id, result.content)
        except OSError as exc:
            LOGGER.warning("Could not write image for %s: %s", entry.item_id, exc)
            entry.status = CacheStatus.SKIP
            stats.report_write_failed(entry.item_id)
            continue

        entry.status = CacheStatus.EXIST
        stats.report_cached(entry.item_id)
        LOGGER.debug("Cached %s from %s to %s", entry.item_id, result.url, path)
        stats.report_persist(index.persist())

    LOGGER.info("Storing index file")
    stats.report_persist(index.persist())
    stats.finish_run()
    LOGGER.info(
        "Batch run finished: %d cached, %d skipped of %d pending",
        stats.cached,
        stats.skipped,
        stats.pending,
    )
    return stats
