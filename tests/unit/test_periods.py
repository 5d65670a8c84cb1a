"""Unit tests for period resolution and configuration building."""

import sys
from datetime import datetime, time, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "fixtures"))
from fake_provider import NOW

from four_keys.config import (
    build_deployment_config,
    build_failure_config,
    parse_period,
    validate_repository,
)
from four_keys.errors import InvalidConfiguration
from four_keys.models import DateRange, DeploymentMethod, Period
from four_keys.periods import resolve_period


@pytest.mark.unit
class TestResolvePeriod:
    """Test mapping periods to date ranges."""

    @pytest.mark.parametrize("period,start", [
        (Period.DAY, datetime(2024, 6, 15, tzinfo=timezone.utc)),
        (Period.WEEK, datetime(2024, 6, 8, tzinfo=timezone.utc)),
        (Period.MONTH, datetime(2024, 5, 15, tzinfo=timezone.utc)),
        (Period.QUARTER, datetime(2024, 3, 15, tzinfo=timezone.utc)),
        (Period.YEAR, datetime(2023, 6, 15, tzinfo=timezone.utc)),
    ])
    def test_start_of_range(self, period, start):
        assert resolve_period(period, NOW).start == start

    def test_range_ends_at_end_of_today(self):
        date_range = resolve_period(Period.MONTH, NOW)

        assert date_range.end.date() == NOW.date()
        assert date_range.end.time() == time.max
        assert date_range.end.tzinfo == timezone.utc

    def test_accepts_string_value(self):
        assert resolve_period("week", NOW) == resolve_period(Period.WEEK, NOW)

    def test_naive_reference_time_is_utc(self):
        date_range = resolve_period(Period.DAY, datetime(2024, 6, 15, 12, 0))

        assert date_range.start.tzinfo == timezone.utc

    def test_month_end_clamps(self):
        now = datetime(2024, 3, 31, 9, 0, tzinfo=timezone.utc)

        assert resolve_period(Period.MONTH, now).start == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_unknown_period(self):
        with pytest.raises(InvalidConfiguration):
            resolve_period("fortnight", NOW)

    def test_days_counts_both_ends(self):
        assert resolve_period(Period.DAY, NOW).days == 1
        assert resolve_period(Period.WEEK, NOW).days == 8

    def test_contains_is_inclusive(self):
        date_range = resolve_period(Period.WEEK, NOW)

        assert date_range.start in date_range
        assert date_range.end in date_range
        assert datetime(2024, 6, 7, 23, 59, tzinfo=timezone.utc) not in date_range

    def test_to_dict(self):
        date_range = DateRange(
            start=datetime(2024, 6, 8, tzinfo=timezone.utc),
            end=datetime(2024, 6, 15, tzinfo=timezone.utc),
        )

        assert date_range.to_dict() == {
            "from": "2024-06-08T00:00:00+00:00",
            "to": "2024-06-15T00:00:00+00:00",
        }


@pytest.mark.unit
class TestConfig:
    """Test configuration builders."""

    def test_parse_period(self):
        assert parse_period("quarter") == Period.QUARTER

    def test_parse_period_unknown(self):
        with pytest.raises(InvalidConfiguration, match="expected one of"):
            parse_period("decade")

    def test_deployment_config_defaults_to_release(self):
        config = build_deployment_config()

        assert config.method == DeploymentMethod.RELEASE
        assert config.tag_prefix is None

    def test_deployment_config_empty_strings_become_none(self):
        config = build_deployment_config("tag", workflow_name="", tag_prefix="", tag_pattern="")

        assert config.method == DeploymentMethod.TAG
        assert config.workflow_name is None
        assert config.tag_prefix is None
        assert config.tag_pattern is None

    def test_deployment_config_unknown_method(self):
        with pytest.raises(InvalidConfiguration):
            build_deployment_config("carrier-pigeon")

    def test_deployment_config_bad_pattern(self):
        with pytest.raises(InvalidConfiguration, match="tag pattern"):
            build_deployment_config("tag", tag_pattern="v[0-9")

    def test_failure_config_normalizes_labels(self):
        config = build_failure_config(issue_labels=[" Incident ", "SEV1", ""], pr_labels=["HotFix"])

        assert config.issue_labels == frozenset({"incident", "sev1"})
        assert config.pr_labels == frozenset({"hotfix"})
        assert config.detect_workflow_failures is False

    def test_failure_config_bad_branch_pattern(self):
        with pytest.raises(InvalidConfiguration, match="branch pattern"):
            build_failure_config(pr_branch_pattern="(hotfix")

    def test_configs_are_immutable(self):
        config = build_failure_config(issue_labels=["incident"])

        with pytest.raises(AttributeError):
            config.issue_labels = frozenset()

    @pytest.mark.parametrize("owner,repo", [("", "repo"), ("owner", ""), ("  ", "repo")])
    def test_validate_repository(self, owner, repo):
        with pytest.raises(InvalidConfiguration):
            validate_repository(owner, repo)
