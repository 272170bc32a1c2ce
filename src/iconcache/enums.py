"""
Cache Enumerations

String-based enums so status values serialize into index.json unchanged.
"""

from enum import StrEnum


class CacheStatus(StrEnum):
    """Download state of a single cache entry."""

    NONE = "none"    # Not attempted yet
    EXIST = "exist"  # Image file written
    SKIP = "skip"    # Attempted and failed, never retried

    @classmethod
    def terminal_states(cls) -> tuple["CacheStatus", ...]:
        """Return states the batch run never reconsiders."""
        return (cls.EXIST, cls.SKIP)

    @classmethod
    def parse(cls, value: object) -> "CacheStatus":
        """Coerce a stored value, falling back to NONE for anything unknown."""
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.NONE
