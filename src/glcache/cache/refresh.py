"""Staleness policy deciding when a populate call must hit the API."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from glcache.cache.config import DEFAULT_TTL_SECONDS
from glcache.models import CacheMetadata


class RefreshMode(str, Enum):
    NORMAL = "normal"
    FORCED = "forced"


@dataclass
class RefreshDecision:
    """Whether to fetch, and why."""

    fetch: bool
    reason: str
    age_seconds: Optional[int] = None


@dataclass
class RefreshResult:
    """Outcome of :meth:`ProjectCache.initialize`.

    ``fetched`` is False when the existing snapshot was fresh enough to keep.
    Failures are raised, never reported through this object.
    """

    fetched: bool
    project_count: int
    reason: str
    age_seconds: Optional[int] = None


def cache_age(metadata: Optional[CacheMetadata], now: float) -> Optional[int]:
    """Seconds since the last successful refresh, or None if never refreshed."""
    if not metadata:
        return None
    try:
        timestamp = int(metadata.get("cache_timestamp") or 0)
    except (TypeError, ValueError):
        return None
    if timestamp <= 0:
        return None
    return max(0, int(now - timestamp))


def is_ttl_valid(metadata: Optional[CacheMetadata], ttl_seconds: Optional[int], now: float) -> bool:
    """Check if the snapshot is still fresh.

    Args:
        metadata: Stored metadata (None if absent)
        ttl_seconds: Time-to-live in seconds; None means never expire
        now: Current Unix time

    Returns:
        True if the snapshot is younger than the TTL
    """
    age = cache_age(metadata, now)
    if age is None:
        return False
    if ttl_seconds is None:
        return True
    return age < ttl_seconds


def get_ttl_remaining(metadata: Optional[CacheMetadata], ttl_seconds: int, now: float) -> int:
    """Seconds until the snapshot goes stale (0 if already stale)."""
    age = cache_age(metadata, now)
    if age is None:
        return 0
    return max(0, ttl_seconds - age)


class RefreshPolicy:
    """Decide whether a populate operation should call the remote API."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def now(self) -> float:
        return self.clock()

    def should_fetch(
        self,
        mode: RefreshMode,
        metadata: Optional[CacheMetadata],
        data_exists: bool,
    ) -> RefreshDecision:
        """Apply the TTL rule.

        ``forced`` always fetches. ``normal`` fetches when either file is
        missing or the snapshot age has reached the TTL.
        """
        now = self.now()
        age = cache_age(metadata, now)

        if RefreshMode(mode) is RefreshMode.FORCED:
            return RefreshDecision(True, "forced refresh", age)
        if not data_exists:
            return RefreshDecision(True, "no cached snapshot", age)
        if age is None:
            return RefreshDecision(True, "no refresh timestamp in metadata", age)
        if is_ttl_valid(metadata, self.ttl_seconds, now):
            hours = age // 3600
            return RefreshDecision(
                False, f"cache is fresh ({hours}h old), use refresh to force", age
            )
        return RefreshDecision(True, f"cache is stale ({age // 3600}h old)", age)
