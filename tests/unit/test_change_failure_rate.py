"""Unit tests for the change failure rate calculator."""

import logging
import sys
from datetime import timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "fixtures"))
from fake_provider import NOW, FakeProvider

from four_keys.calculators import ChangeFailureRateCalculator
from four_keys.models import DeploymentConfig, FailureConfig, Issue, Period, Release


def days_ago(days):
    return NOW - timedelta(days=days)


def incident(number, closed_days_ago):
    return Issue(number, f"Incident {number}", days_ago(closed_days_ago + 1),
                 days_ago(closed_days_ago), labels=["incident"])


INCIDENTS = FailureConfig(issue_labels=frozenset({"incident"}))


@pytest.mark.unit
class TestChangeFailureRateCalculator:
    """Test failures relative to deployments."""

    def test_rate_as_percent(self):
        provider = FakeProvider(
            releases=[Release(f"v{i}", f"{i}", days_ago(i)) for i in range(1, 5)],
            issues=[incident(1, 1), incident(2, 3)],
        )

        result = ChangeFailureRateCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
        )

        assert result.total_deployments == 4
        assert result.failed_deployments == 2
        assert result.failure_rate == 50.0
        assert [f.identifier for f in result.failures] == ["#1", "#2"]

    def test_no_deployments_is_zero(self, caplog):
        provider = FakeProvider(issues=[incident(1, 1)])

        with caplog.at_level(logging.WARNING):
            result = ChangeFailureRateCalculator(provider).calculate(
                "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
            )

        assert result.total_deployments == 0
        assert result.failed_deployments == 1
        assert result.failure_rate == 0.0
        assert "no deployments" in caplog.text

    def test_rate_can_exceed_hundred(self):
        provider = FakeProvider(
            releases=[Release("v1", "1", days_ago(1))],
            issues=[incident(1, 1), incident(2, 2)],
        )

        result = ChangeFailureRateCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
        )

        assert result.failure_rate == 200.0

    def test_rounded_to_two_decimals(self):
        provider = FakeProvider(
            releases=[Release(f"v{i}", f"{i}", days_ago(i)) for i in range(1, 4)],
            issues=[incident(1, 1)],
        )

        result = ChangeFailureRateCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
        )

        assert result.failure_rate == 33.33

    def test_no_failure_signals(self):
        provider = FakeProvider(releases=[Release("v1", "1", days_ago(1))])

        result = ChangeFailureRateCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), FailureConfig(), now=NOW
        )

        assert result.failure_rate == 0.0
        assert result.to_dict()["failure_rate_percent"] == 0.0

    def test_to_dict_reports_configs(self):
        provider = FakeProvider(releases=[Release("v1", "1", days_ago(1))])

        data = ChangeFailureRateCalculator(provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
        ).to_dict()

        assert data["deployment_config"]["method"] == "release"
        assert data["failure_config"]["issue_labels"] == ["incident"]
        assert data["failure_config"]["detect_workflow_failures"] is False
