"""Local cache of GitLab project metadata.

Key components:
- ProjectCache: Main cache interface
- CacheConfig: Configuration management
- SnapshotStore: Data and metadata files on disk
- RefreshPolicy: TTL-based staleness decision
- QueryEngine: Read-only filters over a snapshot
"""

from glcache.cache.config import CacheConfig
from glcache.cache.errors import (
    CacheDiskFullError,
    CacheError,
    CacheLockError,
    CachePermissionError,
    CorruptSnapshotError,
    DuplicateProjectError,
    NotInitializedError,
)
from glcache.cache.manager import ProjectCache
from glcache.cache.query import QueryEngine
from glcache.cache.refresh import RefreshMode, RefreshPolicy, RefreshResult
from glcache.cache.snapshot import Snapshot
from glcache.cache.store import SnapshotStore, ValidationReport

__all__ = [
    "ProjectCache",
    "CacheConfig",
    "SnapshotStore",
    "Snapshot",
    "ValidationReport",
    "RefreshMode",
    "RefreshPolicy",
    "RefreshResult",
    "QueryEngine",
    "CacheError",
    "NotInitializedError",
    "CorruptSnapshotError",
    "DuplicateProjectError",
    "CacheDiskFullError",
    "CachePermissionError",
    "CacheLockError",
]
