from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

CACHE_DIR_ENV = "alfred_workflow_cache"

DEFAULT_ORIGIN = "https://favicon.enpass.io"
DEFAULT_SIZE = "120x120"
DEFAULT_VARIANTS = ("", "-1", "-2", "-3")


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    log_max_mb: int = 5
    log_backup_count: int = 3


@dataclass(slots=True)
class NetworkConfig:
    """Favicon provider settings from config.yml."""

    origin: str = DEFAULT_ORIGIN
    size: str = DEFAULT_SIZE
    variants: List[str] = field(default_factory=lambda: list(DEFAULT_VARIANTS))
    timeout_s: Optional[float] = None  # None keeps the transport default

    def __post_init__(self) -> None:
        self.origin = self.origin.rstrip("/")
        if not self.variants:
            self.variants = list(DEFAULT_VARIANTS)


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    cache_dir: Path
    logs_dir: Path
    default_icon: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)

    def to_json(self) -> str:
        """Serialize the resolved paths and provider settings for diagnostics."""
        data = {
            "cache_dir": str(self.cache_dir),
            "logs_dir": str(self.logs_dir),
            "default_icon": str(self.default_icon),
            "network": {
                "origin": self.network.origin,
                "size": self.network.size,
                "variants": list(self.network.variants),
                "timeout_s": self.network.timeout_s,
            },
        }
        return json.dumps(data, indent=2, sort_keys=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")
        return content


def _resolve_cache_dir(base_dir: Path, explicit: Optional[Path], configured: Optional[str]) -> Path:
    if explicit is not None:
        return Path(explicit).expanduser()
    if configured:
        return Path(configured).expanduser()
    env_dir = os.environ.get(CACHE_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return base_dir / "cache"


def load_app_config(base_dir: Path, cache_dir: Optional[Path] = None) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults.

    Nothing is created here; the cache layout is owned by ``iconcache.layout``
    so an unwritable cache root degrades to a disabled cache instead of
    failing at startup.
    """

    config_yaml = base_dir / "config" / "config.yml"
    config_overrides = _load_yaml(config_yaml)

    resolved_cache_dir = _resolve_cache_dir(base_dir, cache_dir, config_overrides.get("cache_dir"))

    default_icon_cfg = config_overrides.get("default_icon")
    if default_icon_cfg:
        default_icon = Path(default_icon_cfg).expanduser()
        if not default_icon.is_absolute():
            default_icon = base_dir / default_icon
    else:
        default_icon = base_dir / "icons" / "unknown.png"

    logging_cfg = config_overrides.get("logging", {}) or {}
    logging_config = LoggingConfig(
        level=str(logging_cfg.get("level", "INFO")).upper(),
        log_max_mb=int(logging_cfg.get("log_max_mb", 5)),
        log_backup_count=int(logging_cfg.get("log_backup_count", 3)),
    )

    network_cfg = config_overrides.get("network", {}) or {}
    timeout_s = network_cfg.get("timeout_s")
    network_config = NetworkConfig(
        origin=network_cfg.get("origin", DEFAULT_ORIGIN),
        size=network_cfg.get("size", DEFAULT_SIZE),
        variants=[str(variant or "") for variant in network_cfg.get("variants", DEFAULT_VARIANTS)],
        timeout_s=float(timeout_s) if timeout_s is not None else None,
    )

    return AppConfig(
        base_dir=base_dir,
        cache_dir=resolved_cache_dir,
        logs_dir=resolved_cache_dir / "logs",
        default_icon=default_icon,
        logging=logging_config,
        network=network_config,
    )
