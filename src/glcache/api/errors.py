"""Exceptions for GitLab API failures.

The cache passes these through to its caller unchanged.
"""

from typing import Any, Optional


class GitLabAPIError(Exception):
    """A GitLab API request failed.

    Attributes:
        status_code: HTTP status, or None for transport failures
        api_message: The ``message``/``error`` field of the response body, if any
        response_body: Decoded response body (JSON or text)
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        api_message: Optional[str] = None,
        response_body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.api_message = api_message
        self.response_body = response_body


class GitLabConnectionError(GitLabAPIError):
    """Network failure or timeout talking to GitLab."""

    pass


class GitLabValidationError(GitLabAPIError):
    """400/422: the request was rejected as invalid."""

    pass


class GitLabAuthenticationError(GitLabAPIError):
    """401: token missing, expired or revoked."""

    pass


class GitLabPermissionError(GitLabAPIError):
    """403: token lacks permission for this action."""

    pass


class GitLabNotFoundError(GitLabAPIError):
    """404: project, user or member does not exist (or is not visible)."""

    pass


class GitLabConflictError(GitLabAPIError):
    """409: resource already exists (project name taken, user already a member)."""

    pass


class GitLabRateLimitError(GitLabAPIError):
    """429: too many requests."""

    pass


STATUS_ERRORS = {
    400: GitLabValidationError,
    401: GitLabAuthenticationError,
    403: GitLabPermissionError,
    404: GitLabNotFoundError,
    409: GitLabConflictError,
    422: GitLabValidationError,
    429: GitLabRateLimitError,
}

STATUS_HINTS = {
    400: "Bad request. Check project ID and parameters.",
    401: "Unauthorized. Check your access token.",
    403: "Forbidden. Your token lacks permission for this action.",
    404: "Not found.",
    409: "Conflict. The resource already exists.",
    422: "Unprocessable request.",
    429: "Rate limited by GitLab. Try again later.",
}


def error_for_status(
    status_code: int,
    endpoint: str,
    api_message: Optional[str] = None,
    response_body: Any = None,
) -> GitLabAPIError:
    """Build the exception matching an HTTP error status."""
    error_class = STATUS_ERRORS.get(status_code, GitLabAPIError)
    hint = STATUS_HINTS.get(status_code, "GitLab API request failed.")
    message = f"GitLab API returned {status_code} for {endpoint}: {hint}"
    if api_message:
        message += f" ({api_message})"
    return error_class(
        message,
        status_code=status_code,
        api_message=api_message,
        response_body=response_body,
    )
