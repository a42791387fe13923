"""Export and reporting views over cached projects.

These are read-only renderings: delimited text, JSON, plain text, and a
descriptive activity report.
"""

import csv
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import orjson
import pandas as pd

from glcache.cache.query import QueryEngine
from glcache.models import Member, Project, Visibility, format_timestamp

EXPORT_FORMATS = ("csv", "json", "txt")
LIST_FORMATS = ("names", "full", "count", "summary", "csv")

EXPORT_COLUMNS = [
    "name",
    "id",
    "visibility",
    "last_activity_at",
    "owner_username",
    "web_url",
    "description",
]
SEARCH_CSV_COLUMNS = ["name", "visibility", "last_activity_at", "owner", "web_url"]
REMOTE_FORMATS = ("raw", "csv", "json")
REMOTE_CSV_COLUMNS = ["name", "last_activity_at", "visibility", "web_url"]
MEMBER_CSV_COLUMNS = ["name", "username", "access_level", "role", "expires_at"]


def _visibility(project: Project) -> str:
    if project.visibility:
        return project.visibility.value
    return str(project.raw.get("visibility") or "")


def _to_csv(rows: List[Dict[str, object]], columns: List[str]) -> str:
    frame = pd.DataFrame(rows, columns=columns)
    return frame.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def projects_to_csv(projects: Sequence[Project]) -> str:
    """Full-record CSV used by ``export csv``."""
    rows = [
        {
            "name": p.name,
            "id": p.id,
            "visibility": _visibility(p),
            "last_activity_at": p.last_activity_at or "",
            "owner_username": p.owner_username or "",
            "web_url": p.web_url or "",
            "description": p.description or "",
        }
        for p in projects
    ]
    return _to_csv(rows, EXPORT_COLUMNS)


def projects_to_json(projects: Sequence[Project]) -> str:
    return orjson.dumps([p.to_dict() for p in projects], option=orjson.OPT_INDENT_2).decode()


def projects_to_text(projects: Sequence[Project], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    lines = [f"GitLab Projects Export - {format_timestamp(now)}", "=" * 40]
    lines.extend(
        f"{p.name} - {_visibility(p)} - {p.last_activity_at or 'unknown'}" for p in projects
    )
    return "\n".join(lines) + "\n"


def export_projects(
    projects: Sequence[Project],
    fmt: str,
    output: Optional[Union[str, Path]] = None,
) -> str:
    """Render projects as csv, json or txt, optionally writing to a file.

    Args:
        projects: Records to export (snapshot order is kept)
        fmt: One of ``csv``, ``json``, ``txt``
        output: File path to write; parent directories are created

    Returns:
        The rendered text

    Raises:
        ValueError: If the format is unknown
    """
    fmt = fmt.lower()
    if fmt == "csv":
        content = projects_to_csv(projects)
    elif fmt == "json":
        content = projects_to_json(projects) + "\n"
    elif fmt == "txt":
        content = projects_to_text(projects)
    else:
        raise ValueError(f"Invalid export format '{fmt}'. Use: {', '.join(EXPORT_FORMATS)}")

    if output is not None:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return content


def format_projects(projects: Sequence[Project], fmt: str = "names", style: str = "visibility") -> str:
    """Render a query result in one of the listing formats.

    Args:
        projects: Query result
        fmt: ``names``, ``full``, ``count``, ``summary`` or ``csv``
        style: Third column of ``summary`` lines: ``visibility`` or ``owner``

    Raises:
        ValueError: If the format is unknown
    """
    if fmt == "names":
        return "\n".join(p.name for p in projects)
    if fmt == "full":
        return projects_to_json(projects)
    if fmt == "count":
        return str(len(projects))
    if fmt == "summary":
        if style == "owner":
            return "\n".join(
                f"{p.name} - {p.owner_username or 'unknown'} - {p.last_activity_at}"
                for p in projects
            )
        return "\n".join(
            f"{p.name} - {p.last_activity_at} - {_visibility(p)}" for p in projects
        )
    if fmt == "csv":
        rows = [
            {
                "name": p.name,
                "visibility": _visibility(p),
                "last_activity_at": p.last_activity_at or "",
                "owner": p.owner_username or "",
                "web_url": p.web_url or "",
            }
            for p in projects
        ]
        return _to_csv(rows, SEARCH_CSV_COLUMNS).rstrip("\n")
    raise ValueError(f"Invalid format '{fmt}'. Use: {', '.join(LIST_FORMATS)}")


def format_remote_projects(records: Sequence[Dict[str, Any]], fmt: str = "raw") -> str:
    """Render project records straight from the API as raw, csv or json.

    Raises:
        ValueError: If the format is unknown
    """
    if fmt == "raw":
        return "\n".join(
            f"{r.get('name') or 'N/A'} - {r.get('last_activity_at') or 'N/A'}" for r in records
        )
    if fmt == "csv":
        rows = [{column: r.get(column) or "" for column in REMOTE_CSV_COLUMNS} for r in records]
        return _to_csv(rows, REMOTE_CSV_COLUMNS).rstrip("\n")
    if fmt == "json":
        return orjson.dumps(list(records), option=orjson.OPT_INDENT_2).decode()
    raise ValueError(f"Invalid format '{fmt}'. Use: {', '.join(REMOTE_FORMATS)}")


def member_records(members: Sequence[Member]) -> List[Dict[str, Any]]:
    return [
        {
            "id": m.id,
            "username": m.username,
            "name": m.name,
            "access_level": m.access_level,
            "role": m.role,
            "expires_at": m.expires_at,
        }
        for m in members
    ]


def members_to_csv(members: Sequence[Member]) -> str:
    rows = [
        {column: "" if record[column] is None else record[column] for column in MEMBER_CSV_COLUMNS}
        for record in member_records(members)
    ]
    return _to_csv(rows, MEMBER_CSV_COLUMNS).rstrip("\n")


# --- reporting ---


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """Calendar date ``days`` before ``now`` (UTC), as a midnight datetime."""
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")
    now = now or datetime.now(timezone.utc)
    cutoff = (now.astimezone(timezone.utc) - timedelta(days=days)).date()
    return datetime(cutoff.year, cutoff.month, cutoff.day, tzinfo=timezone.utc)


def rank_owners(projects: Sequence[Project], limit: int = 10) -> List[Tuple[str, int]]:
    """Owners by number of projects, most first; ties broken by name."""
    if not projects:
        return []
    owners = pd.Series([p.owner_username or "unknown" for p in projects])
    counts = owners.value_counts()
    ranked = sorted(
        ((str(owner), int(count)) for owner, count in counts.items()),
        key=lambda kv: (-kv[1], kv[0]),
    )
    return ranked[:limit]


@dataclass
class ActivityReport:
    """Descriptive statistics over a snapshot."""

    generated_at: datetime
    days: int
    since: datetime
    total: int
    active: List[Project] = field(default_factory=list)
    by_visibility: Dict[str, int] = field(default_factory=dict)
    top_owners: List[Tuple[str, int]] = field(default_factory=list)
    recent_limit: int = 20

    @property
    def active_count(self) -> int:
        return len(self.active)

    @property
    def inactive_count(self) -> int:
        return self.total - self.active_count

    @property
    def recent(self) -> List[Project]:
        return self.active[: self.recent_limit]


def activity_report(
    projects: Sequence[Project],
    days: int = 30,
    now: Optional[datetime] = None,
    recent_limit: int = 20,
    owner_limit: int = 10,
) -> ActivityReport:
    """Build the activity report for a trailing window of ``days``."""
    now = now or datetime.now(timezone.utc)
    since = days_ago(days, now)
    engine = QueryEngine(projects)
    groups = engine.group_by_visibility()
    return ActivityReport(
        generated_at=now,
        days=days,
        since=since,
        total=len(engine.projects),
        active=engine.filter_updated_since(since.date()),
        by_visibility={v.value: len(groups[v]) for v in Visibility},
        top_owners=rank_owners(engine.projects, owner_limit),
        recent_limit=recent_limit,
    )


def render_report(report: ActivityReport) -> str:
    """Plain-text rendering of an :class:`ActivityReport`."""
    lines = [
        "GitLab Project Activity Report",
        "=" * 34,
        f"Report Date: {format_timestamp(report.generated_at)}",
        f"Period: Last {report.days} days (since {report.since.date().isoformat()})",
        "",
        "Summary:",
        f"  Total Projects: {report.total}",
        f"  Active Projects: {report.active_count}",
        f"  Inactive Projects: {report.inactive_count}",
        "",
        "Visibility Breakdown:",
    ]
    lines.extend(f"  {level}: {count} projects" for level, count in report.by_visibility.items())
    lines.append("")
    lines.append(f"Recent Activity (Last {report.days} days):")
    if report.active:
        lines.extend(
            f"  {p.name} - {p.last_activity_at} - {_visibility(p)}" for p in report.recent
        )
        remaining = report.active_count - len(report.recent)
        if remaining > 0:
            lines.append(f"  ... and {remaining} more")
    else:
        lines.append("  No recent activity found")
    lines.append("")
    lines.append("Top Project Owners:")
    lines.extend(f"  {owner:<20} {count} projects" for owner, count in report.top_owners)
    return "\n".join(lines) + "\n"


def stale_projects(
    projects: Sequence[Project],
    days: int = 90,
    now: Optional[datetime] = None,
) -> List[Project]:
    """Projects with no activity since UTC midnight ``days`` ago."""
    cutoff = days_ago(days, now)
    return QueryEngine(projects).filter_not_updated_since(cutoff.date())
