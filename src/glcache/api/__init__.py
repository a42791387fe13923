"""GitLab REST API client used to populate and mutate the cache."""

from glcache.api.client import GitLabClient
from glcache.api.errors import (
    GitLabAPIError,
    GitLabAuthenticationError,
    GitLabConflictError,
    GitLabConnectionError,
    GitLabNotFoundError,
    GitLabPermissionError,
    GitLabRateLimitError,
    GitLabValidationError,
)

__all__ = [
    "GitLabClient",
    "GitLabAPIError",
    "GitLabAuthenticationError",
    "GitLabConflictError",
    "GitLabConnectionError",
    "GitLabNotFoundError",
    "GitLabPermissionError",
    "GitLabRateLimitError",
    "GitLabValidationError",
]
