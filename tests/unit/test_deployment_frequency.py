"""Unit tests for the deployment frequency calculator."""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "fixtures"))
from fake_provider import NOW, FakeProvider

from four_keys.calculators import DeploymentFrequencyCalculator
from four_keys.calculators.performance import PerformanceTier, classify_deployment_frequency
from four_keys.errors import InvalidConfiguration
from four_keys.models import DeploymentConfig, Period, Release


def days_ago(days):
    return NOW - timedelta(days=days)


@pytest.mark.unit
class TestDeploymentFrequencyCalculator:
    """Test deployments per day."""

    def test_two_releases_in_a_week(self):
        provider = FakeProvider(releases=[
            Release("v1.1.0", "1.1.0", days_ago(1)),
            Release("v1.0.0", "1.0.0", days_ago(4)),
        ])

        result = DeploymentFrequencyCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), now=NOW
        )

        assert result.repository == "acme/api"
        assert result.total_deployments == 2
        assert result.date_range.days == 8
        assert result.deployments_per_day == 0.25
        assert result.deployment_dates == [days_ago(4), days_ago(1)]

    def test_no_deployments(self):
        result = DeploymentFrequencyCalculator(FakeProvider()).calculate(
            "acme", "api", Period.MONTH, DeploymentConfig(), now=NOW
        )

        assert result.total_deployments == 0
        assert result.deployments_per_day == 0.0

    def test_single_day_period(self):
        provider = FakeProvider(releases=[
            Release("v3", "3", NOW - timedelta(hours=1)),
            Release("v2", "2", NOW - timedelta(hours=3)),
        ])

        result = DeploymentFrequencyCalculator(provider).calculate(
            "acme", "api", "day", DeploymentConfig(), now=NOW
        )

        assert result.period == Period.DAY
        assert result.deployments_per_day == 2.0

    def test_rate_keeps_four_decimals(self):
        provider = FakeProvider(releases=[Release("v1", "1", days_ago(2))])

        result = DeploymentFrequencyCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), now=NOW
        )

        assert result.deployments_per_day == 0.125

    def test_unknown_period(self):
        with pytest.raises(InvalidConfiguration):
            DeploymentFrequencyCalculator(FakeProvider()).calculate(
                "acme", "api", "fortnight", DeploymentConfig(), now=NOW
            )

    def test_to_json(self):
        provider = FakeProvider(releases=[Release("v1", "1", days_ago(1))])

        result = DeploymentFrequencyCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), now=NOW
        )
        data = json.loads(result.to_json())

        assert data["repository"] == "acme/api"
        assert data["period"] == "week"
        assert data["total_deployments"] == 1
        assert data["date_range"]["from"] == "2024-06-08T00:00:00+00:00"
        assert data["deployment_dates"] == [days_ago(1).isoformat()]
        assert data["config"]["method"] == "release"
        assert data["config"]["tag_prefix"] is None

    def test_monthly_boundary_classifies_on_exact_rate(self):
        # 2023-02-28 through 2023-03-29 is a 30-day window
        now = datetime(2023, 3, 29, 12, 0, tzinfo=timezone.utc)
        provider = FakeProvider(releases=[Release("v1", "1", now - timedelta(days=1))])

        result = DeploymentFrequencyCalculator(provider).calculate(
            "acme", "api", Period.MONTH, DeploymentConfig(), now=now
        )

        assert result.date_range.days == 30
        assert result.deployments_per_day == 0.0333
        assert result.exact_deployments_per_day == pytest.approx(1 / 30)
        assert classify_deployment_frequency(result.exact_deployments_per_day) == PerformanceTier.MEDIUM
