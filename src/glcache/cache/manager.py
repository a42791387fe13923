"""Project cache: the handle every cache operation goes through."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from glcache.api.errors import GitLabAPIError
from glcache.cache.config import CacheConfig
from glcache.cache.export import (
    ActivityReport,
    activity_report,
    export_projects,
    stale_projects,
)
from glcache.cache.query import DateLike, QueryEngine
from glcache.cache.refresh import RefreshMode, RefreshPolicy, RefreshResult, cache_age
from glcache.cache.snapshot import Snapshot
from glcache.cache.store import SnapshotStore, ValidationReport
from glcache.models import (
    GITLAB_API_VERSION,
    CacheMetadata,
    Project,
    Visibility,
    format_timestamp,
)

if TYPE_CHECKING:
    from glcache.api.client import GitLabClient

logger = logging.getLogger(__name__)


class ProjectCache:
    """Local snapshot of the projects visible to a GitLab token.

    Construct one per cache directory and pass it around; there is no
    module-level instance. Reads never call the network: querying before
    :meth:`initialize` raises :class:`NotInitializedError`.

    Example:
        cache = ProjectCache(CacheConfig.from_env())
        cache.initialize(GitLabClient(token))
        cache.search_by_name("api")
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        store: Optional[SnapshotStore] = None,
        policy: Optional[RefreshPolicy] = None,
    ):
        """Initialize the cache handle.

        Args:
            config: Cache configuration (defaults resolved per OS)
            store: Snapshot store override (defaults to ``config.cache_dir``)
            policy: Refresh policy override (defaults to ``config.ttl_seconds``)
        """
        self.config = config or CacheConfig()
        self.store = store or SnapshotStore(
            self.config.cache_dir, lock_timeout=self.config.lock_timeout
        )
        self.policy = policy or RefreshPolicy(ttl_seconds=self.config.ttl_seconds)

    @property
    def cache_file(self) -> Path:
        return self.store.data_path

    def is_initialized(self) -> bool:
        return self.store.exists()

    def load(self) -> Snapshot:
        """Load the snapshot from disk (raises NotInitializedError if absent)."""
        return self.store.load()

    def query(self, snapshot: Optional[Snapshot] = None) -> QueryEngine:
        """Query engine over the given (or freshly loaded) snapshot."""
        if snapshot is None:
            snapshot = self.load()
        return QueryEngine(snapshot.projects)

    # --- populate ---

    def _fresh_metadata(self, project_count: int) -> CacheMetadata:
        now = self.policy.now()
        stamp = format_timestamp(datetime.fromtimestamp(now, tz=timezone.utc))
        return {
            "cache_timestamp": int(now),
            "cache_created": stamp,
            "project_count": project_count,
            "gitlab_api_version": GITLAB_API_VERSION,
            "cache_file": str(self.store.data_path),
            "last_api_call": stamp,
        }

    def initialize(
        self,
        client: "GitLabClient",
        mode: Union[str, RefreshMode] = RefreshMode.NORMAL,
    ) -> RefreshResult:
        """Populate the cache from GitLab unless a fresh snapshot exists.

        A fetch replaces the whole snapshot. If the API call fails the
        exception propagates and the files on disk are left untouched.

        Args:
            client: Remote client providing ``list_projects()``
            mode: ``normal`` (respect the TTL) or ``forced``

        Returns:
            RefreshResult describing whether a fetch happened
        """
        metadata = self.store.load_metadata()
        decision = self.policy.should_fetch(
            RefreshMode(mode), metadata, self.store.exists()
        )
        if not decision.fetch:
            logger.info(decision.reason)
            count = metadata.get("project_count", 0) if metadata else 0
            return RefreshResult(False, int(count or 0), decision.reason, decision.age_seconds)

        logger.info(f"Fetching all projects from GitLab API ({decision.reason})...")
        records = client.list_projects()
        try:
            projects = [Project.from_dict(record) for record in records]
        except ValueError as e:
            raise GitLabAPIError(f"Malformed project record from GitLab API: {e}") from e

        snapshot = Snapshot(projects=projects, metadata=self._fresh_metadata(len(projects)))
        self.store.save(snapshot)
        logger.info(f"Cache initialized with {len(snapshot)} projects at {self.store.data_path}")
        return RefreshResult(True, len(snapshot), decision.reason, 0)

    def refresh(self, client: "GitLabClient") -> RefreshResult:
        """Force a full re-fetch regardless of age."""
        return self.initialize(client, RefreshMode.FORCED)

    def upsert(self, project: Union[Project, Dict[str, Any]]) -> Snapshot:
        """Insert or replace one project by ID, re-sort and persist.

        Creates the snapshot if none exists yet; the refresh timestamp is not
        advanced, so the next normal :meth:`initialize` still fetches.
        """
        if isinstance(project, dict):
            project = Project.from_dict(project)
        if self.store.exists():
            snapshot = self.load()
        else:
            snapshot = Snapshot(metadata=self.store.load_metadata())
        snapshot.upsert(project)
        self.store.save(snapshot)
        logger.debug(f"Project updated in cache: {project.name}")
        return snapshot

    # --- queries ---

    def exists_by_name(self, name: str) -> Optional[Project]:
        return self.query().exists_by_name(name)

    def search_by_name(self, pattern: str) -> List[Project]:
        return self.query().search_by_name(pattern)

    def filter_by_member(self, username: str) -> List[Project]:
        return self.query().filter_by_member(username)

    def filter_updated_since(self, since: DateLike) -> List[Project]:
        return self.query().filter_updated_since(since)

    def filter_updated_before(self, before: DateLike) -> List[Project]:
        return self.query().filter_updated_before(before)

    def filter_by_visibility(self, level: Union[str, Visibility]) -> List[Project]:
        return self.query().filter_by_visibility(level)

    def advanced_search(self, **criteria: Any) -> List[Project]:
        return self.query().advanced_search(**criteria)

    def list_recent(self, limit: int = 10) -> List[Project]:
        return self.query().list_recent(limit)

    def group_by_visibility(self) -> Dict[Visibility, List[Project]]:
        return self.query().group_by_visibility()

    def all_names(self) -> List[str]:
        return self.query().all_names()

    # --- reporting ---

    def export(self, fmt: str, output: Optional[Union[str, Path]] = None) -> str:
        return export_projects(self.load().projects, fmt, output)

    def report(self, days: int = 30, now: Optional[datetime] = None) -> ActivityReport:
        return activity_report(self.load().projects, days=days, now=now)

    def stale(self, days: int = 90, now: Optional[datetime] = None) -> List[Project]:
        return stale_projects(self.load().projects, days=days, now=now)

    def info(self) -> Optional[Dict[str, Any]]:
        """Summary of the cache, or None when it has not been initialized.

        Metadata is advisory: without it the data file still counts as a
        cache, and created/count/age are reported as None.
        """
        if not self.store.exists():
            return None
        metadata = self.store.load_metadata() or {}
        age = cache_age(metadata, self.policy.now())
        return {
            "cache_file": str(self.store.data_path),
            "created": metadata.get("cache_created"),
            "project_count": metadata.get("project_count"),
            "age_hours": None if age is None else age // 3600,
            "file_size_bytes": self.store.file_size(),
        }

    def stats(self) -> Dict[str, Any]:
        return self.store.stats()

    def validate(self) -> ValidationReport:
        return self.store.validate()

    def clear(self) -> bool:
        return self.store.clear()
