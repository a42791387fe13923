"""Per-OS location of the cache directory."""

import logging
import os
import stat
import sys
from pathlib import Path
from typing import Mapping, Optional

from glcache.cache.errors import CacheError, CachePermissionError

logger = logging.getLogger(__name__)

APP_DIR_NAME = "glcache"
DIR_MODE = 0o755


def resolve_cache_dir(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Pick the application data directory for this platform.

    Pure function of its inputs; nothing is created on disk.

    Args:
        platform: ``sys.platform`` style identifier (default: current)
        environ: Environment mapping (default: ``os.environ``)
        home: User home directory (default: ``Path.home()``)

    Returns:
        Path to the ``glcache`` directory

    Examples:
        >>> resolve_cache_dir("darwin", {}, Path("/Users/ada"))
        PosixPath('/Users/ada/Library/Application Support/glcache')
        >>> resolve_cache_dir("linux", {"XDG_DATA_HOME": "/data"}, Path("/home/ada"))
        PosixPath('/data/glcache')
    """
    platform = sys.platform if platform is None else platform
    environ = os.environ if environ is None else environ
    home = Path.home() if home is None else Path(home)

    if platform in ("win32", "cygwin", "msys") or environ.get("APPDATA"):
        base = Path(environ["APPDATA"]) if environ.get("APPDATA") else home / "AppData" / "Roaming"
        return base / APP_DIR_NAME
    if platform == "darwin":
        return home / "Library" / "Application Support" / APP_DIR_NAME
    if platform.startswith("linux") or environ.get("XDG_DATA_HOME"):
        base = Path(environ["XDG_DATA_HOME"]) if environ.get("XDG_DATA_HOME") else home / ".local" / "share"
        return base / APP_DIR_NAME
    return home / f".{APP_DIR_NAME}"


def ensure_cache_dir(path: Path) -> Path:
    """Create the cache directory (and parents) with owner rwx, no world write.

    An existing directory keeps its mode apart from losing world write.

    Args:
        path: Directory to create

    Returns:
        The same path

    Raises:
        CachePermissionError: If the directory cannot be created for lack of permission
        CacheError: For any other OS error (e.g. disk full)
    """
    path = Path(path)
    try:
        if not path.is_dir():
            path.mkdir(parents=True, exist_ok=True)
            os.chmod(path, DIR_MODE)
        else:
            mode = stat.S_IMODE(path.stat().st_mode)
            if mode & stat.S_IWOTH:
                os.chmod(path, mode & ~stat.S_IWOTH)
    except PermissionError as e:
        raise CachePermissionError(f"Cannot create cache directory at {path}: {e}") from e
    except OSError as e:
        logger.error(f"Error creating cache directory {path}: {e}")
        raise CacheError(f"Cannot create cache directory at {path}: {e}") from e
    return path
