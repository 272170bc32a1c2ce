"""Command line for the favicon cache.

Commands:
  update-cache   Download pending favicons (normally started in the background)
  resolve        Register item icon metadata and print icon paths
  icon ID        Print the icon path for one item
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from iconcache.app_version import get_app_version
from iconcache.config import AppConfig, load_app_config
from iconcache.index import ImageCacheIndex
from iconcache.logging import configure_logging, get_logger
from iconcache.orchestrator import cache_images

from .background import CACHE_JOB_NAME, JOBS_DIRNAME, release, run_in_background, update_cache_command

LOGGER = get_logger("workflow.main")

EXIT_OK = 0
EXIT_USAGE = 2


class InputError(ValueError):
    """Raised when the entries document handed to ``resolve`` is malformed."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="iconcache", description="Favicon cache for vault items")
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_app_version()}")
    parser.add_argument("--base-dir", type=Path, default=Path.cwd(),
                        help="Directory holding config/config.yml (default: current directory)")
    parser.add_argument("--cache-dir", type=Path, default=None,
                        help="Cache root, overrides the configured location")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("update-cache", help="Download favicons for all pending items")

    resolve = subparsers.add_parser("resolve", help="Register items and print their icon paths")
    resolve.add_argument("--entries", type=Path, default=None,
                         help="JSON file with [{\"id\": ..., \"icon\": ...}] (default: stdin)")
    resolve.add_argument("--no-background", action="store_true",
                         help="Do not trigger the background download")

    icon = subparsers.add_parser("icon", help="Print the icon path for one item")
    icon.add_argument("item_id")
    return parser


def parse_entries(text: str) -> List[Dict[str, Any]]:
    """Validate the ``resolve`` input document."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InputError(f"entries are not valid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise InputError("entries must be a JSON array")

    entries: List[Dict[str, Any]] = []
    for position, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise InputError(f"entry {position} is not an object")
        item_id = raw.get("id")
        if not isinstance(item_id, str) or not item_id:
            raise InputError(f"entry {position} has no string id")
        entries.append({"id": item_id, "icon": raw.get("icon")})
    return entries


def icon_for(index: ImageCacheIndex, config: AppConfig, item_id: str) -> Path:
    return index.resolve_image_path(item_id) or config.default_icon


def handle_update_cache(index: ImageCacheIndex, config: AppConfig) -> int:
    LOGGER.info("Begin update cache")
    try:
        stats = cache_images(index, network=config.network)
    finally:
        release(CACHE_JOB_NAME, config.cache_dir / JOBS_DIRNAME)
    LOGGER.info("Update cache summary: %s", json.dumps(stats.to_dict(), sort_keys=True))
    return EXIT_OK


def handle_resolve(index: ImageCacheIndex, config: AppConfig, args: argparse.Namespace) -> int:
    try:
        if args.entries is not None:
            text = args.entries.read_text(encoding="utf-8")
        else:
            text = sys.stdin.read()
        entries = parse_entries(text)
    except (OSError, InputError) as exc:
        sys.stderr.write(f"iconcache resolve: {exc}\n")
        return EXIT_USAGE

    results = []
    for entry in entries:
        index.register_raw(entry["id"], entry["icon"])
        results.append({"id": entry["id"], "icon": str(icon_for(index, config, entry["id"]))})

    json.dump(results, sys.stdout)
    sys.stdout.write("\n")
    sys.stdout.flush()

    # a batch may have finished while we resolved; keep its statuses
    index.merge_from_disk()
    index.persist()

    if not args.no_background and index.enabled and index.pending():
        LOGGER.info("Triggering background image caching")
        run_in_background(
            CACHE_JOB_NAME,
            update_cache_command(cache_dir=config.cache_dir, base_dir=config.base_dir),
            config.cache_dir / JOBS_DIRNAME,
        )
    return EXIT_OK


def handle_icon(index: ImageCacheIndex, config: AppConfig, args: argparse.Namespace) -> int:
    sys.stdout.write(f"{icon_for(index, config, args.item_id)}\n")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_app_config(args.base_dir.expanduser(), cache_dir=args.cache_dir)
    except (OSError, ValueError, TypeError) as exc:
        parser.error(f"invalid configuration: {exc}")

    configure_logging(
        config.logs_dir,
        level=getattr(logging, config.logging.level, logging.INFO),
        max_bytes=config.logging.log_max_mb * 1024 * 1024,
        backup_count=config.logging.log_backup_count,
    )

    index = ImageCacheIndex.open(config.cache_dir)

    if args.command == "update-cache":
        return handle_update_cache(index, config)
    if args.command == "resolve":
        return handle_resolve(index, config, args)
    return handle_icon(index, config, args)


if __name__ == "__main__":
    sys.exit(main())
