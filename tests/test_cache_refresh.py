"""Tests for cache population and the staleness policy."""

import json

import pytest

from conftest import FakeClient, make_record
from glcache.api.errors import GitLabAPIError, GitLabAuthenticationError
from glcache.cache.errors import NotInitializedError
from glcache.cache.refresh import (
    RefreshMode,
    RefreshPolicy,
    cache_age,
    get_ttl_remaining,
    is_ttl_valid,
)

NOW = 1754568000
HOUR = 3600


class TestRefreshPolicy:
    """Test the TTL decision in isolation."""

    def test_forced_always_fetches(self):
        policy = RefreshPolicy(clock=lambda: NOW)
        decision = policy.should_fetch(RefreshMode.FORCED, {"cache_timestamp": NOW}, True)
        assert decision.fetch

    def test_missing_data_fetches(self):
        policy = RefreshPolicy(clock=lambda: NOW)
        assert policy.should_fetch(RefreshMode.NORMAL, {"cache_timestamp": NOW}, False).fetch

    def test_missing_metadata_fetches(self):
        policy = RefreshPolicy(clock=lambda: NOW)
        assert policy.should_fetch(RefreshMode.NORMAL, None, True).fetch

    def test_zero_timestamp_fetches(self):
        policy = RefreshPolicy(clock=lambda: NOW)
        assert policy.should_fetch(RefreshMode.NORMAL, {"cache_timestamp": 0}, True).fetch

    @pytest.mark.parametrize(
        "age,fetch",
        [(0, False), (HOUR, False), (4 * HOUR - 60, False), (4 * HOUR, True), (4 * HOUR + 60, True)],
    )
    def test_four_hour_boundary(self, age, fetch):
        policy = RefreshPolicy(ttl_seconds=4 * HOUR, clock=lambda: NOW)
        decision = policy.should_fetch(
            RefreshMode.NORMAL, {"cache_timestamp": NOW - age}, True
        )
        assert decision.fetch is fetch
        assert decision.age_seconds == age

    def test_mode_accepts_string(self):
        policy = RefreshPolicy(clock=lambda: NOW)
        assert policy.should_fetch("forced", {"cache_timestamp": NOW}, True).fetch


class TestTTLHelpers:
    """Test age and TTL helpers."""

    def test_cache_age(self):
        assert cache_age({"cache_timestamp": NOW - 90}, NOW) == 90
        assert cache_age(None, NOW) is None
        assert cache_age({"cache_timestamp": "bogus"}, NOW) is None

    def test_ttl_valid(self):
        assert is_ttl_valid({"cache_timestamp": NOW - 10}, 60, NOW)
        assert not is_ttl_valid({"cache_timestamp": NOW - 60}, 60, NOW)
        assert is_ttl_valid({"cache_timestamp": NOW - 10**6}, None, NOW)

    def test_ttl_remaining(self):
        assert get_ttl_remaining({"cache_timestamp": NOW - 10}, 60, NOW) == 50
        assert get_ttl_remaining({"cache_timestamp": NOW - 100}, 60, NOW) == 0


class TestInitialize:
    """Test populating the cache from the API."""

    def test_first_initialize_fetches(self, cache, sample_records):
        client = FakeClient(sample_records)
        result = cache.initialize(client)

        assert result.fetched
        assert result.project_count == 5
        assert len(client.calls) == 1
        metadata = cache.store.load_metadata()
        assert metadata["cache_timestamp"] == NOW
        assert metadata["cache_created"] == "2025-08-07T12:00:00.000Z"
        assert metadata["project_count"] == 5

    def test_fresh_cache_skips_fetch(self, cache, clock, sample_records):
        cache.initialize(FakeClient(sample_records))
        clock.advance(4 * HOUR - 60)

        client = FakeClient([])
        result = cache.initialize(client)

        assert not result.fetched
        assert result.project_count == 5
        assert client.calls == []

    def test_stale_cache_fetches(self, cache, clock, sample_records):
        cache.initialize(FakeClient(sample_records))
        clock.advance(4 * HOUR + 60)

        client = FakeClient(sample_records[:2])
        result = cache.initialize(client)

        assert result.fetched
        assert len(cache.load()) == 2

    def test_refresh_ignores_ttl(self, populated_cache):
        client = FakeClient([make_record(42, "only-one")])
        result = populated_cache.refresh(client)

        assert result.fetched
        assert populated_cache.all_names() == ["only-one"]

    def test_failed_fetch_leaves_files_untouched(self, populated_cache):
        data_before = populated_cache.store.data_path.read_bytes()
        meta_before = populated_cache.store.meta_path.read_bytes()

        client = FakeClient(fail_with=GitLabAuthenticationError("401", status_code=401))
        with pytest.raises(GitLabAuthenticationError):
            populated_cache.refresh(client)

        assert populated_cache.store.data_path.read_bytes() == data_before
        assert populated_cache.store.meta_path.read_bytes() == meta_before

    def test_failed_first_fetch_creates_nothing(self, cache):
        client = FakeClient(fail_with=GitLabAPIError("boom"))
        with pytest.raises(GitLabAPIError):
            cache.initialize(client)
        assert not cache.is_initialized()

    def test_malformed_record_is_api_error(self, cache):
        client = FakeClient([{"id": 1}])
        with pytest.raises(GitLabAPIError, match="Malformed"):
            cache.initialize(client)
        assert not cache.is_initialized()

    def test_empty_account(self, cache):
        result = cache.initialize(FakeClient([]))
        assert result.fetched
        assert json.loads(cache.store.data_path.read_text()) == []
        assert cache.list_recent() == []


class TestInfo:
    """Test cache information summary."""

    def test_uninitialized(self, cache):
        assert cache.info() is None
        with pytest.raises(NotInitializedError):
            cache.load()

    def test_info(self, populated_cache, clock):
        clock.advance(2 * HOUR + 5)
        info = populated_cache.info()
        assert info["project_count"] == 5
        assert info["age_hours"] == 2
        assert info["file_size_bytes"] > 0
        assert info["cache_file"].endswith("projects-cache.json")

    def test_info_without_metadata(self, populated_cache):
        populated_cache.store.meta_path.unlink()

        info = populated_cache.info()

        assert populated_cache.is_initialized()
        assert info is not None
        assert info["project_count"] is None
        assert info["created"] is None
        assert info["age_hours"] is None
        assert info["file_size_bytes"] > 0
