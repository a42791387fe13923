"""Record types shared by the cache, the API client and the CLI."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Union

from typing_extensions import TypedDict

GITLAB_API_VERSION = "v4"


class Visibility(str, Enum):
    """Project access-control classification mirrored from GitLab."""

    PUBLIC = "public"
    INTERNAL = "internal"
    PRIVATE = "private"

    @classmethod
    def parse(cls, value: Union[str, "Visibility", None]) -> Optional["Visibility"]:
        """Convert a raw value to a Visibility, or None if it is not one."""
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


class AccessLevel(IntEnum):
    """GitLab membership access levels."""

    GUEST = 10
    REPORTER = 20
    DEVELOPER = 30
    MAINTAINER = 40
    OWNER = 50


def role_name(access_level: Union[int, str, None]) -> str:
    """Return the display name for a GitLab access level.

    Examples:
        >>> role_name(30)
        'Developer'
        >>> role_name(99)
        'Unknown (99)'
    """
    try:
        return AccessLevel(int(access_level)).name.capitalize()
    except (TypeError, ValueError):
        return f"Unknown ({access_level})"


class CacheMetadata(TypedDict, total=False):
    """Advisory record stored next to the project data file."""

    cache_timestamp: int  # Unix epoch seconds of the last successful refresh
    cache_created: str  # ISO 8601, UTC
    project_count: int
    cache_file: str
    last_api_call: str  # ISO 8601, UTC
    gitlab_api_version: str


# --- timestamps ---


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Accepts the ``Z`` suffix GitLab uses (``2025-08-07T10:30:00.000Z``).
    Naive values are taken to be UTC.
    """
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime the way GitLab does: millisecond precision, ``Z``."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}': use YYYY-MM-DD format") from e


def start_of_day(value: Union[str, date]) -> datetime:
    """Midnight UTC at the start of the given calendar date."""
    return datetime.combine(parse_date(value), time.min, tzinfo=timezone.utc)


def end_of_day(value: Union[str, date]) -> datetime:
    """Last representable instant (UTC) of the given calendar date."""
    return datetime.combine(parse_date(value), time.max, tzinfo=timezone.utc)


# --- records ---


@dataclass
class Project:
    """A cached GitLab project.

    ``id`` and ``name`` are required; everything else is optional and may be
    absent upstream. The full source record is kept in ``raw`` so fields the
    cache does not model survive a load/save cycle.
    """

    id: int
    name: str
    path: Optional[str] = None
    path_with_namespace: Optional[str] = None
    namespace_path: Optional[str] = None
    visibility: Optional[Visibility] = None
    owner_username: Optional[str] = None
    last_activity_at: Optional[str] = None
    web_url: Optional[str] = None
    http_url_to_repo: Optional[str] = None
    ssh_url_to_repo: Optional[str] = None
    description: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Build a Project from a GitLab API / cache record.

        Raises:
            ValueError: If the record is not a mapping or lacks ``id``/``name``
        """
        if not isinstance(data, dict):
            raise ValueError(f"Project record must be an object, got {type(data).__name__}")
        project_id = data.get("id")
        if project_id is None or isinstance(project_id, bool):
            raise ValueError("Project record is missing 'id'")
        try:
            project_id = int(project_id)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Project id must be an integer, got {data.get('id')!r}") from e
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Project {project_id} is missing 'name'")

        owner = data.get("owner") or {}
        namespace = data.get("namespace") or {}
        return cls(
            id=project_id,
            name=name,
            path=data.get("path"),
            path_with_namespace=data.get("path_with_namespace"),
            namespace_path=namespace.get("path") if isinstance(namespace, dict) else None,
            visibility=Visibility.parse(data.get("visibility")),
            owner_username=owner.get("username") if isinstance(owner, dict) else None,
            last_activity_at=data.get("last_activity_at"),
            web_url=data.get("web_url"),
            http_url_to_repo=data.get("http_url_to_repo"),
            ssh_url_to_repo=data.get("ssh_url_to_repo"),
            description=data.get("description"),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the GitLab record shape."""
        data = dict(self.raw)
        scalar_fields = {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "path_with_namespace": self.path_with_namespace,
            "visibility": self.visibility.value if self.visibility else None,
            "last_activity_at": self.last_activity_at,
            "web_url": self.web_url,
            "http_url_to_repo": self.http_url_to_repo,
            "ssh_url_to_repo": self.ssh_url_to_repo,
            "description": self.description,
        }
        for key, value in scalar_fields.items():
            if value is not None or key in data:
                if key == "visibility" and value is None:
                    # Unrecognized upstream value: keep what GitLab sent
                    continue
                data[key] = value

        if self.owner_username is not None:
            owner = dict(data.get("owner") or {})
            owner["username"] = self.owner_username
            data["owner"] = owner
        if self.namespace_path is not None:
            namespace = dict(data.get("namespace") or {})
            namespace["path"] = self.namespace_path
            data["namespace"] = namespace
        return data

    @property
    def last_activity(self) -> Optional[datetime]:
        """Last activity as an aware UTC datetime, or None if absent/unparseable."""
        if not self.last_activity_at:
            return None
        try:
            return parse_timestamp(self.last_activity_at)
        except ValueError:
            return None

    @property
    def namespace(self) -> Optional[str]:
        """Namespace path, falling back to the first segment of the full path."""
        if self.namespace_path:
            return self.namespace_path
        if self.path_with_namespace and "/" in self.path_with_namespace:
            return self.path_with_namespace.split("/", 1)[0]
        return None


@dataclass
class User:
    """A GitLab user as returned by the users search endpoint."""

    id: int
    username: str
    name: Optional[str] = None
    web_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=int(data["id"]),
            username=data.get("username") or "",
            name=data.get("name"),
            web_url=data.get("web_url"),
        )


@dataclass
class Member:
    """A project member with an access level."""

    id: int
    username: str
    access_level: int
    name: Optional[str] = None
    expires_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Member":
        return cls(
            id=int(data["id"]),
            username=data.get("username") or "",
            access_level=int(data.get("access_level") or 0),
            name=data.get("name"),
            expires_at=data.get("expires_at"),
        )

    @property
    def role(self) -> str:
        return role_name(self.access_level)
