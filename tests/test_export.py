"""Tests for export formats and activity reporting."""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from glcache.cache.export import (
    activity_report,
    days_ago,
    export_projects,
    format_projects,
    format_remote_projects,
    members_to_csv,
    rank_owners,
    render_report,
    stale_projects,
)
from glcache.models import Member, Project

NOW = datetime(2025, 8, 7, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def projects(sample_records):
    projects = [Project.from_dict(r) for r in sample_records]
    projects.sort(key=lambda p: p.last_activity, reverse=True)
    return projects


def read_csv(text):
    return list(csv.reader(io.StringIO(text)))


class TestExport:
    """Test whole-cache export."""

    def test_csv(self, projects):
        rows = read_csv(export_projects(projects, "csv"))
        assert rows[0] == [
            "name",
            "id",
            "visibility",
            "last_activity_at",
            "owner_username",
            "web_url",
            "description",
        ]
        assert len(rows) == 6
        assert rows[1][0] == "Web-Frontend"
        assert rows[1][1] == "2"

    def test_csv_quotes_commas(self):
        project = Project.from_dict({"id": 1, "name": "x", "description": 'a, "b"'})
        rows = read_csv(export_projects([project], "csv"))
        assert rows[1][-1] == 'a, "b"'

    def test_json_round_trips_records(self, projects, sample_records):
        exported = json.loads(export_projects(projects, "json"))
        assert sorted(exported, key=lambda r: r["id"]) == sample_records

    def test_txt(self, projects):
        text = export_projects(projects, "TXT")
        lines = text.splitlines()
        assert lines[0].startswith("GitLab Projects Export - ")
        assert lines[1] == "=" * 40
        assert lines[2] == "Web-Frontend - public - 2025-08-06T15:30:00.000Z"

    def test_writes_file(self, projects, tmp_path):
        output = tmp_path / "out" / "projects.json"
        content = export_projects(projects, "json", output)
        assert output.read_text() == content

    def test_unknown_format(self, projects):
        with pytest.raises(ValueError, match="Invalid export format"):
            export_projects(projects, "xml")


class TestFormatProjects:
    """Test listing formats for query results."""

    def test_names(self, projects):
        assert format_projects(projects[:2], "names") == "Web-Frontend\napi-gateway"

    def test_count(self, projects):
        assert format_projects(projects, "count") == "5"
        assert format_projects([], "count") == "0"

    def test_summary_styles(self, projects):
        line = format_projects(projects[:1], "summary")
        assert line == "Web-Frontend - 2025-08-06T15:30:00.000Z - public"
        line = format_projects(projects[:1], "summary", style="owner")
        assert line == "Web-Frontend - bob - 2025-08-06T15:30:00.000Z"

    def test_full_is_json(self, projects):
        assert len(json.loads(format_projects(projects, "full"))) == 5

    def test_csv(self, projects):
        rows = read_csv(format_projects(projects, "csv"))
        assert rows[0] == ["name", "visibility", "last_activity_at", "owner", "web_url"]
        assert rows[1][:2] == ["Web-Frontend", "public"]

    def test_unknown(self, projects):
        with pytest.raises(ValueError):
            format_projects(projects, "yaml")


class TestReporting:
    """Test activity report and stale listing."""

    def test_days_ago_is_midnight(self):
        assert days_ago(30, NOW) == datetime(2025, 7, 8, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            days_ago(-1, NOW)

    def test_rank_owners(self, projects):
        assert rank_owners(projects) == [("alice", 2), ("bob", 2), ("carol", 1)]
        assert rank_owners(projects, limit=1) == [("alice", 2)]
        assert rank_owners([]) == []

    def test_activity_report(self, projects):
        report = activity_report(projects, days=30, now=NOW)

        assert report.total == 5
        assert [p.name for p in report.active] == ["Web-Frontend", "api-gateway", "docs"]
        assert report.inactive_count == 2
        assert report.by_visibility == {"public": 2, "internal": 1, "private": 2}

    def test_render_report(self, projects):
        text = render_report(activity_report(projects, days=30, now=NOW))
        assert "Total Projects: 5" in text
        assert "Active Projects: 3" in text
        assert "Period: Last 30 days (since 2025-07-08)" in text
        assert "internal: 1 projects" in text

    def test_render_empty_report(self):
        text = render_report(activity_report([], days=7, now=NOW))
        assert "No recent activity found" in text

    def test_stale_projects(self, projects):
        assert [p.name for p in stale_projects(projects, days=200, now=NOW)] == ["legacy-api"]
        assert [p.name for p in stale_projects(projects, days=30, now=NOW)] == [
            "data-pipeline",
            "legacy-api",
        ]

    def test_cache_report(self, populated_cache):
        report = populated_cache.report(days=30, now=NOW)
        assert report.active_count == 3
        assert [p.name for p in populated_cache.stale(200, now=NOW)] == ["legacy-api"]


class TestRemoteAndMemberFormats:
    """Test rendering of live API listings and member lists."""

    def test_remote_raw(self, sample_records):
        text = format_remote_projects([sample_records[0], {"id": 9}], "raw")
        assert text.splitlines() == [
            "api-gateway - 2025-08-05T09:00:00.000Z",
            "N/A - N/A",
        ]

    def test_remote_csv(self, sample_records):
        rows = read_csv(format_remote_projects(sample_records[:2], "csv"))
        assert rows[0] == ["name", "last_activity_at", "visibility", "web_url"]
        assert rows[2] == [
            "Web-Frontend",
            "2025-08-06T15:30:00.000Z",
            "public",
            "https://gitlab.com/bob/web-frontend",
        ]

    def test_remote_json(self, sample_records):
        assert json.loads(format_remote_projects(sample_records, "json")) == sample_records

    def test_remote_unknown_format(self):
        with pytest.raises(ValueError):
            format_remote_projects([], "xml")

    def test_members_csv_escapes_quotes(self):
        members = [Member(id=3, username="jane", access_level=30, name='Jane "JJ" Doe')]
        rows = read_csv(members_to_csv(members))
        assert rows[0] == ["name", "username", "access_level", "role", "expires_at"]
        assert rows[1] == ['Jane "JJ" Doe', "jane", "30", "Developer", ""]
