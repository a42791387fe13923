"""In-memory snapshot of cached projects."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional

from glcache.models import CacheMetadata, Project

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def activity_sort_key(project: Project) -> datetime:
    """Sort key for activity ordering; projects without a timestamp sort last."""
    return project.last_activity or _OLDEST


def sort_by_activity(projects: Iterable[Project]) -> List[Project]:
    """Return projects ordered newest activity first (stable for ties)."""
    return sorted(projects, key=activity_sort_key, reverse=True)


@dataclass
class Snapshot:
    """The full set of cached projects plus their advisory metadata.

    ``projects`` is kept sorted by ``last_activity_at`` descending after
    every mutating call.
    """

    projects: List[Project] = field(default_factory=list)
    metadata: Optional[CacheMetadata] = None

    def __len__(self) -> int:
        return len(self.projects)

    def __iter__(self) -> Iterator[Project]:
        return iter(self.projects)

    def sort(self) -> None:
        self.projects = sort_by_activity(self.projects)

    def find_by_id(self, project_id: int) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def upsert(self, project: Project) -> None:
        """Insert or replace a project by ID, then re-sort."""
        self.projects = [p for p in self.projects if p.id != project.id]
        self.projects.append(project)
        self.sort()

    def remove(self, project_ids: Iterable[int]) -> List[Project]:
        """Remove projects by ID and return the removed records."""
        ids = set(project_ids)
        removed = [p for p in self.projects if p.id in ids]
        self.projects = [p for p in self.projects if p.id not in ids]
        return removed

    def to_records(self) -> List[dict]:
        return [p.to_dict() for p in self.projects]
