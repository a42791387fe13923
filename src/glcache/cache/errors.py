"""Exceptions raised by the project cache."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from glcache.models import Project


class CacheError(Exception):
    """Base exception for cache-related errors."""

    pass


class NotInitializedError(CacheError):
    """Raised when the cache is queried before a snapshot exists."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or "Cache not initialized. Run 'glcache init <token>' first."
        )


class CorruptSnapshotError(CacheError):
    """Raised when the data file exists but is not a valid project array."""

    pass


class CachePermissionError(CacheError):
    """Raised when cache directory permissions are insufficient."""

    pass


class CacheDiskFullError(CacheError):
    """Raised when disk is full and cannot write to cache."""

    pass


class CacheLockError(CacheError):
    """Raised when unable to acquire cache lock."""

    pass


class DuplicateProjectError(CacheError):
    """Raised when creating a project whose name is already cached."""

    def __init__(self, project: "Project"):
        self.project = project
        self.web_url = project.web_url
        super().__init__(
            f"Project '{project.name}' already exists at: {project.web_url or 'unknown URL'}"
        )
