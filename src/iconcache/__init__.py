"""Local favicon cache for password manager entries."""

from .config import AppConfig, load_app_config  # noqa: F401
from .enums import CacheStatus  # noqa: F401
from .index import CacheEntry, ImageCacheIndex  # noqa: F401
from .orchestrator import cache_images  # noqa: F401
from .stats import CacheRunStats  # noqa: F401
