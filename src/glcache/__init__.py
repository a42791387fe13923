"""glcache: local project cache and command helper for the GitLab API."""

__version__ = "0.1.0"

from glcache.api.client import GitLabClient
from glcache.cache.manager import ProjectCache
from glcache.models import Project, Visibility

__all__ = ["GitLabClient", "Project", "ProjectCache", "Visibility", "__version__"]
