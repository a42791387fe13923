"""Cache configuration management."""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from glcache.cache.paths import resolve_cache_dir

DEFAULT_TTL_SECONDS = 4 * 60 * 60
DEFAULT_GITLAB_URL = "https://gitlab.com"
CONFIG_FILENAME = "config.json"


@dataclass
class CacheConfig:
    """Configuration for the local project cache.

    Attributes:
        cache_dir: Directory holding the cache files. If not provided, the
            per-OS application data directory is used (see
            :func:`glcache.cache.paths.resolve_cache_dir`).
        ttl_seconds: Age after which a normal refresh fetches again (4 hours)
        gitlab_url: Base URL of the GitLab instance
        request_timeout: Timeout in seconds for each API request
        lock_timeout: Seconds to wait for the cache write lock
    """

    cache_dir: Optional[Path] = None
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    gitlab_url: str = DEFAULT_GITLAB_URL
    request_timeout: int = 30
    lock_timeout: int = 30

    def __post_init__(self):
        """Resolve the default directory and normalize string paths."""
        if self.cache_dir is None:
            self.cache_dir = resolve_cache_dir()
        else:
            self.cache_dir = Path(self.cache_dir).expanduser()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from file.

        Args:
            config_path: Path to config file. If None, uses ``config.json``
                in the default cache directory.

        Returns:
            CacheConfig instance (defaults if the file does not exist)
        """
        if config_path is None:
            config_path = resolve_cache_dir() / CONFIG_FILENAME

        if not Path(config_path).exists():
            return cls()

        with open(config_path, "r") as f:
            data = json.load(f)

        if data.get("cache_dir"):
            data["cache_dir"] = Path(data["cache_dir"])

        return cls(**data)

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to file.

        Args:
            config_path: Path to config file. If None, uses ``config.json``
                inside ``cache_dir``.
        """
        if config_path is None:
            config_path = self.cache_dir / CONFIG_FILENAME

        Path(config_path).parent.mkdir(parents=True, exist_ok=True)

        data = {
            "cache_dir": str(self.cache_dir),
            "ttl_seconds": self.ttl_seconds,
            "gitlab_url": self.gitlab_url,
            "request_timeout": self.request_timeout,
            "lock_timeout": self.lock_timeout,
        }

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @classmethod
    def from_env(cls, cache_dir: Optional[Path] = None) -> "CacheConfig":
        """Create configuration from ``config.json`` and environment variables.

        ``config.json`` is read from ``cache_dir`` (or ``GLCACHE_DIR``, or the
        default cache directory); environment variables override it.

        Environment variables:
            GLCACHE_DIR: Cache directory path
            GLCACHE_TTL: Staleness threshold in seconds
            GLCACHE_TIMEOUT: API request timeout in seconds
            GITLAB_URL: GitLab instance URL

        Args:
            cache_dir: Explicit cache directory, taking precedence over GLCACHE_DIR

        Returns:
            CacheConfig instance
        """
        cache_dir = cache_dir or os.getenv("GLCACHE_DIR") or None
        if cache_dir is not None:
            cache_dir = Path(cache_dir).expanduser()
            config = cls.load(cache_dir / CONFIG_FILENAME)
            config.cache_dir = cache_dir
        else:
            config = cls.load()

        if os.getenv("GLCACHE_TTL"):
            config.ttl_seconds = int(os.getenv("GLCACHE_TTL"))

        if os.getenv("GLCACHE_TIMEOUT"):
            config.request_timeout = int(os.getenv("GLCACHE_TIMEOUT"))

        if os.getenv("GITLAB_URL"):
            config.gitlab_url = os.getenv("GITLAB_URL").rstrip("/")

        return config
