"""Shared fixtures for glcache tests."""

from pathlib import Path

import pytest

from glcache.api.errors import GitLabAPIError, GitLabNotFoundError
from glcache.cache.config import CacheConfig
from glcache.cache.manager import ProjectCache
from glcache.cache.refresh import RefreshPolicy

# 2025-08-07T12:00:00Z
NOW = 1754568000


def make_record(
    project_id,
    name,
    last_activity_at="2025-08-01T10:00:00.000Z",
    visibility="private",
    owner="alice",
    namespace=None,
    description=None,
):
    """A GitLab-shaped project record."""
    namespace = namespace or owner
    return {
        "id": project_id,
        "name": name,
        "path": name.lower().replace(" ", "-"),
        "path_with_namespace": f"{namespace}/{name.lower()}",
        "namespace": {"path": namespace, "kind": "user"},
        "visibility": visibility,
        "owner": {"username": owner, "id": 1000 + project_id},
        "last_activity_at": last_activity_at,
        "web_url": f"https://gitlab.com/{namespace}/{name.lower()}",
        "http_url_to_repo": f"https://gitlab.com/{namespace}/{name.lower()}.git",
        "ssh_url_to_repo": f"git@gitlab.com:{namespace}/{name.lower()}.git",
        "description": description,
        "star_count": 0,
    }


class FakeClient:
    """In-memory stand-in for GitLabClient that records every call."""

    def __init__(self, records=None, fail_with=None):
        self.records = list(records or [])
        self.fail_with = fail_with
        self.calls = []
        self.next_id = 9000
        self.deleted_ids = set()

    def list_projects(self, **kwargs):
        self.calls.append(("list_projects", kwargs))
        if self.fail_with:
            raise self.fail_with
        return list(self.records)

    def create_project(self, name, **attributes):
        self.calls.append(("create_project", name))
        if self.fail_with:
            raise self.fail_with
        self.next_id += 1
        record = make_record(self.next_id, name, last_activity_at="2025-08-07T11:00:00.000Z")
        self.records.append(record)
        return record

    def get_project(self, project_id):
        self.calls.append(("get_project", project_id))
        if self.fail_with:
            raise self.fail_with
        if project_id in self.deleted_ids:
            raise GitLabNotFoundError("Not found", status_code=404)
        for record in self.records:
            if record["id"] == project_id:
                return record
        raise GitLabAPIError("unexpected project", status_code=500)


@pytest.fixture
def sample_records():
    """Five projects, deliberately not in activity order."""
    return [
        make_record(1, "api-gateway", "2025-08-05T09:00:00.000Z", "private", "alice"),
        make_record(2, "Web-Frontend", "2025-08-06T15:30:00.000Z", "public", "bob"),
        make_record(
            3,
            "data-pipeline",
            "2025-05-01T00:00:00.000Z",
            "internal",
            "carol",
            namespace="platform",
            description="ETL jobs maintained by alice",
        ),
        make_record(4, "legacy-api", "2024-01-15T08:00:00.000Z", "private", "bob"),
        make_record(5, "docs", "2025-08-01T00:00:00.000Z", "public", "alice"),
    ]


@pytest.fixture
def cache_config(tmp_path):
    """Cache configuration rooted in a temp directory."""
    return CacheConfig(cache_dir=tmp_path / "cache", lock_timeout=5)


class Clock:
    """Settable clock for staleness tests."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(cache_config, clock):
    """Empty project cache with a controllable clock."""
    return ProjectCache(
        cache_config,
        policy=RefreshPolicy(ttl_seconds=cache_config.ttl_seconds, clock=clock),
    )


@pytest.fixture
def populated_cache(cache, sample_records):
    """Project cache initialized from the sample records."""
    cache.initialize(FakeClient(sample_records))
    return cache


@pytest.fixture
def cache_dir(cache_config) -> Path:
    return cache_config.cache_dir
