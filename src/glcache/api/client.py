"""GitLab REST (v4) client for projects, users and members."""

import logging
import re
import time
from datetime import date
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests

from glcache.api.errors import (
    GitLabAPIError,
    GitLabConnectionError,
    GitLabNotFoundError,
    GitLabValidationError,
    error_for_status,
)
from glcache.models import AccessLevel, Member, User, Visibility

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://gitlab.com"
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

ProjectRef = Union[int, str]


def validate_email(email: str) -> str:
    """Return the stripped email, or raise ValueError if it is malformed."""
    email = (email or "").strip()
    if not email:
        raise ValueError("Email address cannot be empty.")
    if not EMAIL_PATTERN.match(email):
        raise ValueError(f"Invalid email format: {email}")
    return email


def validate_expiry_date(expires_at: Optional[str], today: Optional[date] = None) -> Optional[str]:
    """Validate a membership expiry date (YYYY-MM-DD, not in the past)."""
    if not expires_at:
        return None
    try:
        parsed = date.fromisoformat(expires_at)
    except ValueError as e:
        raise ValueError(f"Invalid date format '{expires_at}'. Use YYYY-MM-DD.") from e
    if parsed < (today or date.today()):
        raise ValueError("Expiry date must be in the future.")
    return parsed.isoformat()


def encode_project_ref(project: ProjectRef) -> str:
    """Numeric IDs pass through; ``group/project`` paths are URL-encoded."""
    text = str(project).strip()
    if text.isdigit():
        return text
    return quote(text, safe="")


class GitLabClient:
    """GitLab API client authenticated with a personal access token.

    Every request carries a bounded timeout. HTTP errors are mapped to the
    :mod:`glcache.api.errors` hierarchy; nothing is retried.

    Example:
        client = GitLabClient("glpat-...")
        projects = client.list_projects()
        new = client.create_project("my-new-project")
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """Initialize GitLab API client.

        Args:
            token: GitLab personal access token
            base_url: GitLab instance URL (default: https://gitlab.com)
            timeout: Per-request timeout in seconds
            session: Optional preconfigured requests session
        """
        if not token:
            raise ValueError("GitLab Personal Access Token required")
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"PRIVATE-TOKEN": token})

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/api/v4/{endpoint.lstrip('/')}"

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = self._url(endpoint)
        t0 = time.monotonic()
        try:
            response = self.session.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise GitLabConnectionError(
                f"Failed to connect to GitLab API for {endpoint}: {e}"
            ) from e
        finally:
            logger.debug(f"{method} {endpoint} took {time.monotonic() - t0:.2f}s")

        if response.status_code >= 400:
            body = self._decode(response)
            api_message = None
            if isinstance(body, dict):
                api_message = body.get("message") or body.get("error")
                if isinstance(api_message, (dict, list)):
                    api_message = str(api_message)
            raise error_for_status(response.status_code, endpoint, api_message, body)
        return response

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    def _json(self, response: requests.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise GitLabAPIError(
                f"Unexpected non-JSON response from GitLab API for {endpoint}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    def _get_list(self, endpoint: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """GET a paginated collection, following ``X-Next-Page``."""
        results: List[Dict[str, Any]] = []
        page: Optional[str] = "1"
        while page:
            response = self._request("GET", endpoint, params={**params, "page": page})
            body = self._json(response, endpoint)
            if isinstance(body, dict) and "message" in body:
                raise GitLabAPIError(
                    f"Error from GitLab API: {body['message']}",
                    status_code=response.status_code,
                    api_message=str(body["message"]),
                    response_body=body,
                )
            if not isinstance(body, list):
                raise GitLabAPIError(
                    f"Unexpected response format from GitLab API for {endpoint}",
                    status_code=response.status_code,
                    response_body=body,
                )
            results.extend(body)
            page = (response.headers.get("X-Next-Page") or "").strip() or None
        return results

    # --- projects ---

    def list_projects(
        self,
        membership: bool = True,
        last_activity_after: Optional[Union[str, date]] = None,
        visibility: Optional[Union[str, Visibility]] = None,
        per_page: int = 100,
    ) -> List[Dict[str, Any]]:
        """List projects visible to the token.

        Args:
            membership: Limit to projects the user is a member of
            last_activity_after: Only projects active after this date
            visibility: Only projects with this visibility

        Returns:
            Project records as returned by GitLab (all pages)
        """
        params: Dict[str, Any] = {
            "membership": str(membership).lower(),
            "per_page": per_page,
        }
        if last_activity_after:
            params["last_activity_after"] = str(last_activity_after)
        if visibility:
            level = Visibility.parse(visibility)
            if level is None:
                raise ValueError(f"Invalid visibility '{visibility}'")
            params["visibility"] = level.value
        logger.info("Fetching GitLab projects...")
        return self._get_list("projects", params)

    def get_project(self, project: ProjectRef) -> Dict[str, Any]:
        endpoint = f"projects/{encode_project_ref(project)}"
        return self._json(self._request("GET", endpoint), endpoint)

    def create_project(self, name: str, **attributes: Any) -> Dict[str, Any]:
        """Create a project.

        Raises:
            GitLabConflictError: If the name is already taken upstream
            GitLabAPIError: For any other failure
        """
        if not name:
            raise ValueError("Project name required")
        payload = {"name": name, **attributes}
        logger.info(f"Creating new project '{name}'...")
        response = self._request("POST", "projects", json=payload)
        return self._json(response, "projects")

    # --- users ---

    def search_users(self, query: str) -> List[User]:
        users = self._get_list("users", {"search": query, "per_page": 100})
        return [User.from_dict(u) for u in users]

    def find_user_by_email(self, email: str) -> User:
        """Look up a user by email.

        Raises:
            ValueError: If the email is malformed
            GitLabNotFoundError: If no user matches
        """
        email = validate_email(email)
        users = self.search_users(email)
        if not users:
            raise GitLabNotFoundError(
                f"User with email '{email}' not found in GitLab.", status_code=None
            )
        return users[0]

    # --- members ---

    def list_members(self, project: ProjectRef) -> List[Member]:
        endpoint = f"projects/{encode_project_ref(project)}/members"
        return [Member.from_dict(m) for m in self._get_list(endpoint, {"per_page": 100})]

    def add_member(
        self,
        project: ProjectRef,
        user_id: int,
        access_level: Union[int, AccessLevel],
        expires_at: Optional[str] = None,
    ) -> Member:
        """Add a user to a project.

        Raises:
            GitLabConflictError: If the user is already a member
            GitLabValidationError: If the access level is not a GitLab level
        """
        try:
            level = AccessLevel(int(access_level))
        except ValueError as e:
            raise GitLabValidationError(f"Invalid access level: {access_level}") from e
        payload: Dict[str, Any] = {"user_id": int(user_id), "access_level": int(level)}
        expires = validate_expiry_date(expires_at)
        if expires:
            payload["expires_at"] = expires
        endpoint = f"projects/{encode_project_ref(project)}/members"
        response = self._request("POST", endpoint, json=payload)
        return Member.from_dict(self._json(response, endpoint))

    def remove_member(self, project: ProjectRef, user_id: int) -> None:
        endpoint = f"projects/{encode_project_ref(project)}/members/{int(user_id)}"
        self._request("DELETE", endpoint)
