"""Unit tests for date formatting, sorting and filtering."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from docflow.models import Project, ProjectType
from docflow.presentation import SortKey, filter_projects, format_date, sort_projects

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class TestFormatDate:
    """Relative and absolute date rendering."""

    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(seconds=30), "Just now"),
            (timedelta(minutes=1), "1 minute ago"),
            (timedelta(minutes=5), "5 minutes ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=23, minutes=59), "23 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=6), "6 days ago"),
        ],
    )
    def test_relative(self, delta: timedelta, expected: str) -> None:
        """Timestamps under a week render relative to now."""
        assert format_date(NOW - delta, now=NOW) == expected

    def test_same_year_omits_year(self) -> None:
        """Older timestamps in the current year render as month and day."""
        assert format_date(datetime(2024, 3, 4, tzinfo=timezone.utc), now=NOW) == "Mar 4"

    def test_other_year_includes_year(self) -> None:
        """Timestamps from another year include it."""
        assert format_date(datetime(2023, 12, 25, tzinfo=timezone.utc), now=NOW) == "Dec 25, 2023"

    def test_iso_string_input(self) -> None:
        """ISO strings with a Z suffix are accepted."""
        assert format_date("2024-06-15T11:55:00Z", now=NOW) == "5 minutes ago"

    def test_naive_timestamp_is_utc(self) -> None:
        """Naive datetimes are interpreted as UTC."""
        assert format_date(datetime(2024, 6, 15, 10, 0), now=NOW) == "2 hours ago"


class TestSortProjects:
    """Sort orders."""

    def test_date_newest_first(self, make_project) -> None:
        projects = [
            make_project("old", minutes=0),
            make_project("new", minutes=30),
            make_project("mid", minutes=10),
        ]
        assert [p.id for p in sort_projects(projects, SortKey.DATE)] == ["new", "mid", "old"]

    def test_name_ascending_case_insensitive(self, make_project) -> None:
        projects = [
            make_project("1", title="beta"),
            make_project("2", title="Alpha"),
            make_project("3", title="Gamma"),
        ]
        assert [p.title for p in sort_projects(projects, "name")] == ["Alpha", "beta", "Gamma"]

    def test_type_ascending(self, make_project) -> None:
        projects = [
            make_project("1", project_type=ProjectType.USER_STORIES),
            make_project("2", project_type=ProjectType.DESIGN_PROMPT),
            make_project("3", project_type=ProjectType.PRD),
        ]
        assert [p.type for p in sort_projects(projects, SortKey.TYPE)] == [
            ProjectType.DESIGN_PROMPT,
            ProjectType.PRD,
            ProjectType.USER_STORIES,
        ]

    def test_date_mixes_naive_and_aware_records(self, make_project) -> None:
        """A record stored without an offset sorts alongside aware ones."""
        naive = Project.model_validate(
            {
                "id": "naive",
                "title": "Imported",
                "type": "PRD",
                "createdAt": "2024-03-01T12:05:00",
                "updatedAt": "2024-03-01T12:05:00",
            }
        )
        projects = [make_project("old", minutes=0), naive, make_project("new", minutes=10)]

        assert [p.id for p in sort_projects(projects)] == ["new", "naive", "old"]

    def test_unknown_key_rejected(self, make_project) -> None:
        with pytest.raises(ValueError):
            sort_projects([make_project()], "size")


class TestFilterProjects:
    """Search and type filtering."""

    @pytest.fixture
    def projects(self, make_project):
        return [
            make_project("1", title="Checkout flow", description="payments"),
            make_project("2", title="Onboarding", project_type=ProjectType.SPECS),
            make_project("3", title="Search", description="Checkout search box",
                         project_type=ProjectType.SPECS),
        ]

    def test_no_filters_keeps_all(self, projects) -> None:
        assert len(filter_projects(projects)) == 3

    def test_search_matches_title_or_description(self, projects) -> None:
        assert [p.id for p in filter_projects(projects, "CHECKOUT")] == ["1", "3"]

    def test_type_filter(self, projects) -> None:
        assert [p.id for p in filter_projects(projects, project_type="Specs")] == ["2", "3"]

    def test_all_keeps_every_type(self, projects) -> None:
        assert len(filter_projects(projects, project_type="all")) == 3

    def test_search_and_type_combined(self, projects) -> None:
        result = filter_projects(projects, "checkout", ProjectType.SPECS)
        assert [p.id for p in result] == ["3"]
