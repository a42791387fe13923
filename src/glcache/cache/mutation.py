"""Create and update projects through the API while keeping the cache in step."""

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List

from glcache.api.errors import GitLabAPIError, GitLabNotFoundError
from glcache.cache.errors import DuplicateProjectError, NotInitializedError
from glcache.models import Project

if TYPE_CHECKING:
    from glcache.api.client import GitLabClient
    from glcache.cache.manager import ProjectCache

logger = logging.getLogger(__name__)


def create_safely(
    cache: "ProjectCache",
    client: "GitLabClient",
    name: str,
    force: bool = False,
) -> Project:
    """Create a project unless its name is already cached.

    Args:
        cache: Project cache used for the duplicate check and upsert
        client: Remote client whose ``create_project`` is called
        name: Project name
        force: Skip the duplicate check

    Returns:
        The created project (already upserted into the cache)

    Raises:
        DuplicateProjectError: If a cached project has the same name
            (case-insensitive); no remote call is made
        GitLabAPIError: Passed through unchanged if creation fails
    """
    if not name:
        raise ValueError("Project name required")

    if not force:
        try:
            existing = cache.exists_by_name(name)
        except NotInitializedError:
            logger.warning(
                f"Cache not initialized; cannot check for an existing project named '{name}'"
            )
            existing = None
        if existing is not None:
            raise DuplicateProjectError(existing)

    record = client.create_project(name)
    project = Project.from_dict(record)
    cache.upsert(project)
    logger.info(f"Project created and cached: {project.name} (id {project.id})")
    return project


def is_name_available(cache: "ProjectCache", name: str) -> bool:
    """True if no cached project has this name."""
    return cache.exists_by_name(name) is None


def update_projects(
    cache: "ProjectCache",
    client: "GitLabClient",
    names: Iterable[str],
) -> Dict[str, str]:
    """Re-fetch specific cached projects by name and upsert them.

    Returns:
        Mapping of name to outcome: ``updated``, ``not_cached``, or the
        error message for a failed fetch or a malformed record
    """
    snapshot = cache.load()
    engine = cache.query(snapshot)
    outcomes: Dict[str, str] = {}
    changed = False
    for name in names:
        project = engine.exists_by_name(name)
        if project is None:
            logger.warning(f"Project {name} not found in cache")
            outcomes[name] = "not_cached"
            continue
        try:
            fresh = Project.from_dict(client.get_project(project.id))
        except (GitLabAPIError, ValueError) as e:
            logger.error(f"Failed to fetch fresh data for {name}: {e}")
            outcomes[name] = str(e)
            continue
        snapshot.upsert(fresh)
        outcomes[name] = "updated"
        changed = True
    if changed:
        cache.store.save(snapshot)
    return outcomes


def cleanup_deleted(cache: "ProjectCache", client: "GitLabClient") -> List[Project]:
    """Drop cached projects that GitLab reports as gone (404).

    Any other API error aborts the cleanup without touching the cache.

    Returns:
        The removed projects
    """
    snapshot = cache.load()
    gone = []
    for project in snapshot:
        try:
            client.get_project(project.id)
        except GitLabNotFoundError:
            logger.info(f"Removing deleted project: {project.name}")
            gone.append(project.id)
    removed = snapshot.remove(gone)
    if removed:
        cache.store.save(snapshot)
    return removed
