"""Read-only queries over a loaded snapshot.

Every query is a linear scan that preserves snapshot order (newest activity
first). Text matching is case-insensitive; missing optional fields never
match and never raise.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Union

from glcache.models import Project, Visibility, end_of_day, start_of_day

DateLike = Union[str, date]


def _fold(value: Optional[str]) -> str:
    return (value or "").casefold()


class QueryEngine:
    """Queries against a list of projects (normally a snapshot's)."""

    def __init__(self, projects: Iterable[Project]):
        self.projects = list(projects)

    def exists_by_name(self, name: str) -> Optional[Project]:
        """Exact, case-insensitive name match; the first stored match wins."""
        target = _fold(name)
        for project in self.projects:
            if _fold(project.name) == target:
                return project
        return None

    def search_by_name(self, pattern: str) -> List[Project]:
        """Case-insensitive substring match on the name."""
        needle = _fold(pattern)
        return [p for p in self.projects if needle in _fold(p.name)]

    def filter_by_member(self, username: str) -> List[Project]:
        """Projects associated with a user.

        Matches when the owner username or namespace path equals
        ``username``, or the description mentions it. This is a heuristic:
        the cache holds no real membership lists.
        """
        user = _fold(username)
        if not user:
            return []
        return [
            p
            for p in self.projects
            if _fold(p.owner_username) == user
            or _fold(p.namespace) == user
            or user in _fold(p.description)
        ]

    def filter_updated_since(self, since: DateLike) -> List[Project]:
        """Projects active at or after UTC midnight of ``since``."""
        boundary = start_of_day(since)
        return [p for p in self.projects if p.last_activity and p.last_activity >= boundary]

    def filter_updated_before(self, before: DateLike) -> List[Project]:
        """Projects active at or before the end (UTC) of ``before``."""
        boundary = end_of_day(before)
        return [p for p in self.projects if p.last_activity and p.last_activity <= boundary]

    def filter_not_updated_since(self, cutoff: DateLike) -> List[Project]:
        """Projects with no activity since UTC midnight of ``cutoff``.

        Projects with no recorded activity are included.
        """
        boundary = start_of_day(cutoff)
        return [
            p for p in self.projects if p.last_activity is None or p.last_activity < boundary
        ]

    def filter_by_visibility(self, level: Union[str, Visibility]) -> List[Project]:
        """Exact match on visibility.

        Raises:
            ValueError: If ``level`` is not a known visibility
        """
        visibility = Visibility.parse(level)
        if visibility is None:
            raise ValueError(
                f"Invalid visibility '{level}'. Use: public, internal, private"
            )
        return [p for p in self.projects if p.visibility is visibility]

    def advanced_search(
        self,
        name_pattern: Optional[str] = None,
        visibility: Optional[Union[str, Visibility]] = None,
        since: Optional[DateLike] = None,
        before: Optional[DateLike] = None,
        member: Optional[str] = None,
    ) -> List[Project]:
        """AND-combination of the individual filters; omitted criteria are skipped."""
        results = QueryEngine(self.projects)
        if name_pattern:
            results = QueryEngine(results.search_by_name(name_pattern))
        if visibility:
            results = QueryEngine(results.filter_by_visibility(visibility))
        if since:
            results = QueryEngine(results.filter_updated_since(since))
        if before:
            results = QueryEngine(results.filter_updated_before(before))
        if member:
            results = QueryEngine(results.filter_by_member(member))
        return results.projects

    def list_recent(self, limit: int = 10) -> List[Project]:
        """The first ``limit`` projects in activity order."""
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        return self.projects[:limit]

    def group_by_visibility(self) -> Dict[Visibility, List[Project]]:
        """Projects bucketed by visibility; every level is present."""
        groups: Dict[Visibility, List[Project]] = {v: [] for v in Visibility}
        for project in self.projects:
            if project.visibility is not None:
                groups[project.visibility].append(project)
        return groups

    def all_names(self) -> List[str]:
        """All project names, alphabetically."""
        return sorted((p.name for p in self.projects), key=str.casefold)
