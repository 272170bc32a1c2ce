"""Tests for the cache index store."""
from __future__ import annotations

import json
from pathlib import Path

from iconcache.enums import CacheStatus
from iconcache.index import CacheEntry, ImageCacheIndex


def _index_file(cache_root: Path) -> Path:
    return cache_root / "images" / "index.json"


def test_fresh_cache_creates_empty_index_file(cache_root: Path) -> None:
    index = ImageCacheIndex.open(cache_root)

    assert len(index) == 0
    assert index.enabled
    assert _index_file(cache_root).read_text(encoding="utf-8") == "[]"


def test_upsert_creates_entry_with_defaults(index: ImageCacheIndex) -> None:
    entry = index.upsert_fav_key("e1", "")

    assert entry == CacheEntry(item_id="e1", status=CacheStatus.NONE, fav_key="")
    assert index.find_by_id("e1") is entry


def test_upsert_is_idempotent_and_first_key_wins(index: ImageCacheIndex) -> None:
    index.upsert_fav_key("e1", "app.example.com")
    index.upsert_fav_key("e1", "app.example.com")
    index.upsert_fav_key("e1", "other.example.org")

    assert len(index) == 1
    assert index.find_by_id("e1").fav_key == "app.example.com"


def test_upsert_fills_key_left_empty_earlier(index: ImageCacheIndex) -> None:
    index.upsert_fav_key("e1", "")
    index.upsert_fav_key("e1", "example.com")

    assert index.find_by_id("e1").fav_key == "example.com"


def test_register_raw_extracts_fav_field(index: ImageCacheIndex) -> None:
    entry = index.register_raw("e1", '{"fav": "mail.example.com", "image": "x"}')

    assert entry is not None
    assert entry.fav_key == "mail.example.com"


def test_register_raw_ignores_empty_payload(index: ImageCacheIndex) -> None:
    assert index.register_raw("e1", "") is None
    assert index.find_by_id("e1") is None


def test_register_raw_without_fav_creates_pending_free_entry(index: ImageCacheIndex) -> None:
    entry = index.register_raw("e1", "{not json")

    assert entry is not None
    assert entry.fav_key == ""
    assert index.pending() == []


def test_register_raw_keeps_existing_key(index: ImageCacheIndex) -> None:
    index.register_raw("e1", '{"fav": "first.example.com"}')
    index.register_raw("e1", '{"fav": "second.example.com"}')

    assert index.find_by_id("e1").fav_key == "first.example.com"


def test_persist_then_load_round_trips_all_statuses(cache_root: Path) -> None:
    index = ImageCacheIndex.open(cache_root)
    index.entries = [
        CacheEntry("a", CacheStatus.NONE, "a.example.com"),
        CacheEntry("b", CacheStatus.EXIST, "b.example.com"),
        CacheEntry("c", CacheStatus.SKIP, ""),
    ]
    assert index.persist() is True

    reloaded = ImageCacheIndex.open(cache_root)

    assert [(e.item_id, e.status, e.fav_key) for e in reloaded] == [
        ("a", CacheStatus.NONE, "a.example.com"),
        ("b", CacheStatus.EXIST, "b.example.com"),
        ("c", CacheStatus.SKIP, ""),
    ]


def test_persisted_document_uses_index_keys(index: ImageCacheIndex, cache_root: Path) -> None:
    index.upsert_fav_key("e1", "example.com")
    index.persist()

    payload = json.loads(_index_file(cache_root).read_text(encoding="utf-8"))

    assert payload == [{"itemId": "e1", "status": "none", "fav": "example.com"}]
    assert not (cache_root / "images" / "index.json.tmp").exists()


def test_malformed_index_loads_empty(cache_root: Path) -> None:
    images = cache_root / "images"
    images.mkdir(parents=True)
    (images / "index.json").write_text('[{"itemId": "e1"', encoding="utf-8")

    index = ImageCacheIndex.open(cache_root)

    assert len(index) == 0


def test_non_array_index_loads_empty(cache_root: Path) -> None:
    images = cache_root / "images"
    images.mkdir(parents=True)
    (images / "index.json").write_text('{"itemId": "e1"}', encoding="utf-8")

    assert len(ImageCacheIndex.open(cache_root)) == 0


def test_load_tolerates_legacy_keys_and_missing_fields(cache_root: Path) -> None:
    images = cache_root / "images"
    images.mkdir(parents=True)
    records = [
        {"ItemId": "legacy", "Status": "exist", "Fav": "example.com"},
        {"itemId": "bare"},
        {"itemId": "odd", "status": "downloading", "fav": 7},
        {"status": "none", "fav": "no-id.example.com"},
        "garbage",
    ]
    (images / "index.json").write_text(json.dumps(records), encoding="utf-8")

    index = ImageCacheIndex.open(cache_root)

    assert [(e.item_id, e.status, e.fav_key) for e in index] == [
        ("legacy", CacheStatus.EXIST, "example.com"),
        ("bare", CacheStatus.NONE, ""),
        ("odd", CacheStatus.NONE, ""),
    ]


def test_pending_keeps_index_order_and_skips_terminal(index: ImageCacheIndex) -> None:
    index.entries = [
        CacheEntry("done", CacheStatus.EXIST, "done.example.com"),
        CacheEntry("second", CacheStatus.NONE, "second.example.com"),
        CacheEntry("failed", CacheStatus.SKIP, "failed.example.com"),
        CacheEntry("empty", CacheStatus.NONE, ""),
        CacheEntry("fourth", CacheStatus.NONE, "fourth.example.com"),
    ]

    assert [e.item_id for e in index.pending()] == ["second", "fourth"]


def test_resolve_image_path_requires_exist_status_and_file(index: ImageCacheIndex) -> None:
    index.entries = [CacheEntry("e2", CacheStatus.EXIST, "x.y"), CacheEntry("e3", CacheStatus.NONE, "x.z")]
    path = index.write_image("e2", b"png")
    index.write_image("e3", b"png")

    assert index.resolve_image_path("e2") == path
    assert path.name == "e2.png"
    assert index.resolve_image_path("e3") is None
    assert index.resolve_image_path("unknown") is None


def test_resolve_image_path_after_file_removed(index: ImageCacheIndex) -> None:
    index.entries = [CacheEntry("e2", CacheStatus.EXIST, "x.y")]
    path = index.write_image("e2", b"png")
    path.unlink()

    assert index.resolve_image_path("e2") is None
    assert index.find_by_id("e2").status == CacheStatus.EXIST


def test_disabled_index_is_a_no_op() -> None:
    index = ImageCacheIndex(None)

    assert not index.enabled
    assert index.load() == []
    assert index.upsert_fav_key("e1", "example.com") is None
    assert index.register_raw("e1", '{"fav": "example.com"}') is None
    assert index.resolve_image_path("e1") is None
    assert index.persist() is False
    assert len(index) == 0


def test_colliding_ids_keep_their_own_images(index: ImageCacheIndex) -> None:
    index.entries = [
        CacheEntry("a/b", CacheStatus.EXIST, "one.example"),
        CacheEntry("a_b", CacheStatus.EXIST, "two.example"),
    ]
    index.write_image("a/b", b"first")
    index.write_image("a_b", b"second")

    assert index.resolve_image_path("a/b").read_bytes() == b"first"
    assert index.resolve_image_path("a_b").read_bytes() == b"second"


def test_merge_from_disk_keeps_statuses_written_elsewhere(cache_root: Path) -> None:
    stale = ImageCacheIndex.open(cache_root)
    stale.upsert_fav_key("e1", "a.example")
    stale.upsert_fav_key("e2", "b.example")
    stale.persist()

    batch = ImageCacheIndex.open(cache_root)
    batch.find_by_id("e1").status = CacheStatus.EXIST
    batch.find_by_id("e2").status = CacheStatus.SKIP
    batch.upsert_fav_key("e3", "c.example")
    batch.persist()

    stale.upsert_fav_key("e4", "d.example")
    assert stale.merge_from_disk() == 3
    stale.persist()

    reloaded = ImageCacheIndex.open(cache_root)
    assert [(e.item_id, e.status) for e in reloaded] == [
        ("e1", CacheStatus.EXIST),
        ("e2", CacheStatus.SKIP),
        ("e4", CacheStatus.NONE),
        ("e3", CacheStatus.NONE),
    ]
