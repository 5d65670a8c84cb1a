"""Unit tests for the combined Four Keys summary."""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "fixtures"))
from fake_provider import NOW, FakeProvider

from four_keys.calculators import FourKeysSummaryCalculator, PerformanceTier
from four_keys.errors import UpstreamFetchFailure, WorkflowNotFound
from four_keys.models import (
    DeploymentConfig,
    DeploymentMethod,
    FailureConfig,
    Issue,
    Period,
    PullRequest,
    Release,
)

INCIDENTS = FailureConfig(issue_labels=frozenset({"incident"}))


def days_ago(days, hours=0):
    return NOW - timedelta(days=days, hours=hours)


@pytest.fixture
def elite_provider():
    """Daily releases, quick merges, one short incident."""
    return FakeProvider(
        releases=[Release(f"v{i}", f"{i}", days_ago(i, 1)) for i in range(8)],
        pull_requests=[
            PullRequest(n, f"Change {n}", days_ago(n, 3), days_ago(n, 1)) for n in range(1, 4)
        ],
        issues=[Issue(50, "Brief outage", days_ago(2, 1), days_ago(2, 0.5), labels=["incident"])],
    )


@pytest.mark.unit
class TestFourKeysSummaryCalculator:
    """Test the aggregate report."""

    def test_elite_repository(self, elite_provider):
        summary = FourKeysSummaryCalculator(elite_provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
        )

        assert summary.deployment_frequency.deployments_per_day == 1.0
        assert summary.lead_time.average_lead_time_hours == 2.0
        assert summary.change_failure_rate.failure_rate == 12.5
        assert summary.mttr.average_mttr_hours == 0.5
        assert set(summary.levels.values()) == {PerformanceTier.ELITE}
        assert summary.overall_level == PerformanceTier.ELITE

    def test_all_calculators_share_the_date_range(self, elite_provider):
        summary = FourKeysSummaryCalculator(elite_provider).calculate(
            "acme", "api", "week", DeploymentConfig(), INCIDENTS, now=NOW
        )

        assert summary.period == Period.WEEK
        assert summary.date_range == summary.deployment_frequency.date_range
        assert summary.date_range == summary.lead_time.date_range
        assert summary.date_range == summary.change_failure_rate.date_range
        assert summary.date_range == summary.mttr.date_range

    def test_empty_repository(self):
        summary = FourKeysSummaryCalculator(FakeProvider()).calculate(
            "acme", "api", Period.MONTH, DeploymentConfig(), INCIDENTS, now=NOW
        )

        assert summary.levels["deployment_frequency"] == PerformanceTier.LOW
        assert summary.levels["lead_time"] == PerformanceTier.ELITE
        assert summary.levels["change_failure_rate"] == PerformanceTier.ELITE
        assert summary.levels["mttr"] == PerformanceTier.ELITE
        assert summary.overall_level == PerformanceTier.MEDIUM

    def test_upstream_failure_aborts_summary(self, elite_provider):
        elite_provider.fail_on = {"list_closed_issues"}

        with pytest.raises(UpstreamFetchFailure):
            FourKeysSummaryCalculator(elite_provider).calculate(
                "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
            )

    def test_missing_workflow_aborts_summary(self, elite_provider):
        config = DeploymentConfig(method=DeploymentMethod.WORKFLOW, workflow_name="Deploy")

        with pytest.raises(WorkflowNotFound):
            FourKeysSummaryCalculator(elite_provider).calculate(
                "acme", "api", Period.WEEK, config, INCIDENTS, now=NOW
            )

    def test_to_json(self, elite_provider):
        summary = FourKeysSummaryCalculator(elite_provider).calculate(
            "acme", "api", Period.WEEK, DeploymentConfig(), INCIDENTS, now=NOW
        )

        data = json.loads(summary.to_json())

        assert data["repository"] == "acme/api"
        assert data["performance_level"] == "elite"
        assert data["deployment_frequency"]["total"] == 8
        assert data["change_failure_rate"]["failed"] == 1
        assert data["lead_time"]["samples"] == 3
        assert data["mttr"]["incidents"] == 1
        assert {data[k]["level"] for k in (
            "deployment_frequency", "lead_time", "change_failure_rate", "mttr"
        )} == {"elite"}

    def test_one_deployment_in_thirty_days_is_medium(self):
        now = datetime(2023, 3, 29, 12, 0, tzinfo=timezone.utc)
        provider = FakeProvider(releases=[Release("v1", "1", now - timedelta(days=1))])

        summary = FourKeysSummaryCalculator(provider).calculate(
            "acme", "api", Period.MONTH, DeploymentConfig(), INCIDENTS, now=now
        )

        assert summary.deployment_frequency.deployments_per_day == 0.0333
        assert summary.levels["deployment_frequency"] == PerformanceTier.MEDIUM
