"""Rich tables for the command line."""

from typing import Any, Dict, Optional, Sequence

from rich.table import Table

from glcache.models import Member, Project, parse_timestamp


def _short_time(timestamp: Optional[str]) -> str:
    if not timestamp:
        return ""
    try:
        return parse_timestamp(timestamp).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return timestamp[:16]


def _truncate(text: Optional[str], width: int) -> str:
    if not text:
        return ""
    return (text[:width] + "...") if len(text) > width else text


def projects_table(projects: Sequence[Project], title: str) -> Table:
    """Table of projects in the order given."""
    table = Table(title=f"{title} ({len(projects)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Visibility", style="magenta")
    table.add_column("Last Activity", style="blue")
    table.add_column("Owner", style="green")
    table.add_column("URL", style="white", overflow="fold")

    for project in projects:
        table.add_row(
            project.name,
            project.visibility.value if project.visibility else "",
            _short_time(project.last_activity_at),
            project.owner_username or "",
            project.web_url or "",
        )
    return table


def members_table(members: Sequence[Member]) -> Table:
    table = Table(title=f"Members ({len(members)})")
    table.add_column("Name", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("Role", style="magenta")
    table.add_column("Expires", style="blue")

    for member in members:
        table.add_row(
            _truncate(member.name or "N/A", 30),
            member.username or "N/A",
            member.role,
            member.expires_at or "Never",
        )
    return table


def stats_table(stats: Dict[str, Any], title: str = "Cache Statistics") -> Table:
    table = Table(title=title, show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value", overflow="fold")
    for key, value in stats.items():
        table.add_row(key.replace("_", " ").capitalize(), "" if value is None else str(value))
    return table
