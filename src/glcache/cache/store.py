"""On-disk persistence for the project snapshot and its metadata.

Two sibling files live in the cache directory:

- ``projects-cache.json``: JSON array of project records, newest activity first
- ``cache-metadata.json``: advisory metadata (refresh time, record count)

Each file is written through a temp file and ``os.replace`` so readers never
see a half-written file. The data file is written before the metadata file;
a crash between the two leaves stale-but-valid metadata, which
:meth:`SnapshotStore.validate` reports as a warning.
"""

import errno
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
from filelock import FileLock, Timeout

from glcache.cache.errors import (
    CacheDiskFullError,
    CacheError,
    CacheLockError,
    CachePermissionError,
    CorruptSnapshotError,
    NotInitializedError,
)
from glcache.cache.paths import ensure_cache_dir
from glcache.cache.snapshot import Snapshot
from glcache.models import CacheMetadata, Project, format_timestamp

logger = logging.getLogger(__name__)

DATA_FILENAME = "projects-cache.json"
METADATA_FILENAME = "cache-metadata.json"
LOCK_FILENAME = ".cache.lock"
FILE_MODE = 0o644


@dataclass
class ValidationReport:
    """Result of a structural check of the cache files.

    ``problems`` are hard failures (the data file cannot be used);
    ``warnings`` are advisory (metadata missing or out of date).
    """

    problems: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    project_count: int = 0

    @property
    def ok(self) -> bool:
        return not self.problems


class SnapshotStore:
    """Reads and writes the snapshot files in one cache directory."""

    def __init__(self, cache_dir: Path, lock_timeout: float = 30):
        """Initialize the store.

        Args:
            cache_dir: Directory holding the cache files (created on first write)
            lock_timeout: Seconds to wait for the write lock
        """
        self.cache_dir = Path(cache_dir)
        self.data_path = self.cache_dir / DATA_FILENAME
        self.meta_path = self.cache_dir / METADATA_FILENAME
        self.lock_path = self.cache_dir / LOCK_FILENAME
        self.lock_timeout = lock_timeout

    def exists(self) -> bool:
        """True if the data file is present."""
        return self.data_path.exists()

    # --- reading ---

    def _read_json(self, path: Path) -> Any:
        with open(path, "rb") as f:
            return orjson.loads(f.read())

    def load_records(self) -> List[Dict[str, Any]]:
        """Read the raw data file.

        Raises:
            NotInitializedError: If the data file does not exist
            CorruptSnapshotError: If the file is not a JSON array
        """
        if not self.data_path.exists():
            raise NotInitializedError()
        try:
            records = self._read_json(self.data_path)
        except orjson.JSONDecodeError as e:
            raise CorruptSnapshotError(
                f"Cache file {self.data_path} contains invalid JSON: {e}"
            ) from e
        except OSError as e:
            raise CacheError(f"Cannot read cache file {self.data_path}: {e}") from e
        if not isinstance(records, list):
            raise CorruptSnapshotError(
                f"Cache file {self.data_path} is not a JSON array "
                f"(found {type(records).__name__})"
            )
        return records

    def load_metadata(self) -> Optional[CacheMetadata]:
        """Read the metadata file; None if missing or unreadable."""
        if not self.meta_path.exists():
            return None
        try:
            data = self._read_json(self.meta_path)
        except (orjson.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable cache metadata {self.meta_path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring cache metadata that is not an object: {self.meta_path}")
            return None
        return data

    def load(self) -> Snapshot:
        """Load the full snapshot.

        Returns:
            Snapshot with projects in stored order and metadata (or None)

        Raises:
            NotInitializedError: If the data file does not exist
            CorruptSnapshotError: If the data file fails structural validation
        """
        records = self.load_records()
        projects = []
        for index, record in enumerate(records):
            try:
                projects.append(Project.from_dict(record))
            except ValueError as e:
                raise CorruptSnapshotError(
                    f"Invalid project record at index {index} in {self.data_path}: {e}"
                ) from e
        return Snapshot(projects=projects, metadata=self.load_metadata())

    # --- writing ---

    def _write_atomic(self, path: Path, payload: Any) -> None:
        """Write JSON to ``path`` via a temp file and atomic rename."""
        content = orjson.dumps(payload, option=orjson.OPT_INDENT_2)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            try:
                with open(temp_path, "wb") as f:
                    f.write(content)
                    f.write(b"\n")
            except PermissionError as e:
                raise CachePermissionError(f"Cannot write cache file {temp_path}: {e}") from e
            except OSError as e:
                if e.errno == errno.ENOSPC:
                    raise CacheDiskFullError(f"Disk full while writing {path}") from e
                logger.error(f"OS error writing cache file: {e}")
                raise CacheError(f"Cannot write cache file {path}: {e}") from e

            try:
                os.chmod(temp_path, FILE_MODE)
                os.replace(temp_path, path)
            except OSError as e:
                logger.error(f"Error renaming temp file to cache path: {e}")
                raise CacheError(f"Cannot finalize cache file {path}: {e}") from e
        except CacheError:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as cleanup_error:
                    logger.warning(f"Failed to clean up temp file {temp_path}: {cleanup_error}")
            raise

    def _lock(self) -> FileLock:
        ensure_cache_dir(self.cache_dir)
        return FileLock(str(self.lock_path), timeout=self.lock_timeout)

    def save(self, snapshot: Snapshot) -> CacheMetadata:
        """Persist the snapshot: data file first, then metadata.

        The snapshot is sorted before writing. Metadata keeps the refresh
        timestamps already present on ``snapshot.metadata`` and always gets a
        ``project_count`` equal to the written record count.

        Returns:
            The metadata that was written

        Raises:
            CacheLockError: If the write lock cannot be acquired
            CachePermissionError: If the cache directory is not writable
            CacheDiskFullError: If the disk fills up mid-write
        """
        snapshot.sort()
        metadata: CacheMetadata = dict(snapshot.metadata or {})
        metadata.setdefault("cache_timestamp", 0)
        metadata.setdefault("gitlab_api_version", "v4")
        metadata["project_count"] = len(snapshot)
        metadata["cache_file"] = str(self.data_path)

        try:
            with self._lock():
                self._write_atomic(self.data_path, snapshot.to_records())
                self._write_atomic(self.meta_path, metadata)
        except Timeout as e:
            raise CacheLockError(
                f"Timeout acquiring cache lock {self.lock_path} after {self.lock_timeout} seconds"
            ) from e

        snapshot.metadata = metadata
        logger.debug(f"Saved {len(snapshot)} projects to {self.data_path}")
        return metadata

    def clear(self) -> bool:
        """Delete both cache files. Idempotent.

        Returns:
            True if anything was deleted
        """
        deleted = False
        for path in (self.data_path, self.meta_path):
            try:
                path.unlink()
                deleted = True
            except FileNotFoundError:
                continue
            except PermissionError as e:
                raise CachePermissionError(f"Cannot delete cache file {path}: {e}") from e
        return deleted

    # --- inspection ---

    def validate(self) -> ValidationReport:
        """Check the files' structure without judging freshness."""
        report = ValidationReport()

        if not self.data_path.exists():
            report.problems.append("Cache file missing")
            return report

        try:
            records = self._read_json(self.data_path)
        except (orjson.JSONDecodeError, OSError) as e:
            report.problems.append(f"Cache file contains invalid JSON: {e}")
            return report

        if not isinstance(records, list):
            report.problems.append("Cache file is not a JSON array")
            return report

        report.project_count = len(records)
        seen_ids = set()
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                report.problems.append(f"Record {index} is not an object")
                continue
            if record.get("id") is None:
                report.problems.append(f"Record {index} is missing 'id'")
            elif record["id"] in seen_ids:
                report.problems.append(f"Record {index} duplicates id {record['id']}")
            else:
                seen_ids.add(record["id"])
            if not record.get("name"):
                report.problems.append(f"Record {index} is missing 'name'")

        if not self.meta_path.exists():
            report.warnings.append("Metadata file missing")
            return report
        try:
            metadata = self._read_json(self.meta_path)
        except (orjson.JSONDecodeError, OSError):
            report.warnings.append("Metadata file contains invalid JSON")
            return report
        if not isinstance(metadata, dict):
            report.warnings.append("Metadata file is not a JSON object")
        elif metadata.get("project_count") != report.project_count:
            report.warnings.append(
                f"Metadata project_count ({metadata.get('project_count')}) does not match "
                f"cache file ({report.project_count} records)"
            )
        return report

    def stats(self) -> Dict[str, Any]:
        """File-level statistics for monitoring and debugging.

        Raises:
            NotInitializedError: If the data file does not exist
        """
        if not self.data_path.exists():
            raise NotInitializedError()
        stat = self.data_path.stat()
        try:
            project_count = len(self.load_records())
        except CorruptSnapshotError:
            project_count = 0
        return {
            "cache_file": str(self.data_path),
            "file_exists": True,
            "file_size_bytes": stat.st_size,
            "project_count": project_count,
            "cache_directory": str(self.cache_dir),
            "last_modified": format_timestamp(
                datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            ),
        }

    def file_size(self) -> Optional[int]:
        return self.data_path.stat().st_size if self.data_path.exists() else None
