"""Combined Four Keys report with performance classification."""

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Optional

from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import DateRange, DeploymentConfig, FailureConfig, Period
from ..periods import resolve_period
from .change_failure_rate import ChangeFailureRateCalculator, ChangeFailureRateResult
from .deployment_frequency import DeploymentFrequencyCalculator, DeploymentFrequencyResult
from .lead_time import LeadTimeCalculator, LeadTimeResult
from .mttr import MTTRCalculator, MTTRResult
from .performance import (
    PerformanceTier,
    classify_change_failure_rate,
    classify_deployment_frequency,
    classify_lead_time,
    classify_mttr,
    classify_overall,
)

logger = get_logger(__name__)


@dataclass
class FourKeysSummary:
    """All four DORA metrics for one repository and period."""
    repository: str
    period: Period
    date_range: DateRange

    deployment_frequency: DeploymentFrequencyResult
    lead_time: LeadTimeResult
    change_failure_rate: ChangeFailureRateResult
    mttr: MTTRResult

    # Levels per metric, keyed by metric name, and combined
    levels: Dict[str, PerformanceTier]
    overall_level: PerformanceTier

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "repository": self.repository,
            "period": self.period.value,
            "date_range": self.date_range.to_dict(),
            "deployment_frequency": {
                "deployments_per_day": self.deployment_frequency.deployments_per_day,
                "total": self.deployment_frequency.total_deployments,
                "level": self.levels["deployment_frequency"].value,
            },
            "lead_time": {
                "average_hours": self.lead_time.average_lead_time_hours,
                "median_hours": self.lead_time.median_lead_time_hours,
                "p95_hours": self.lead_time.p95_lead_time_hours,
                "samples": self.lead_time.sample_count,
                "level": self.levels["lead_time"].value,
            },
            "change_failure_rate": {
                "rate_percent": self.change_failure_rate.failure_rate,
                "total": self.change_failure_rate.total_deployments,
                "failed": self.change_failure_rate.failed_deployments,
                "level": self.levels["change_failure_rate"].value,
            },
            "mttr": {
                "average_hours": self.mttr.average_mttr_hours,
                "median_hours": self.mttr.median_mttr_hours,
                "incidents": len(self.mttr.incidents),
                "level": self.levels["mttr"].value,
            },
            "performance_level": self.overall_level.value,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


class FourKeysSummaryCalculator:
    """Runs the four metric calculators concurrently and classifies the results."""

    def __init__(
        self,
        provider: ActivityProvider,
        deployment_frequency: Optional[DeploymentFrequencyCalculator] = None,
        lead_time: Optional[LeadTimeCalculator] = None,
        change_failure_rate: Optional[ChangeFailureRateCalculator] = None,
        mttr: Optional[MTTRCalculator] = None,
    ):
        self.deployment_frequency = deployment_frequency or DeploymentFrequencyCalculator(provider)
        self.lead_time = lead_time or LeadTimeCalculator(provider)
        self.change_failure_rate = change_failure_rate or ChangeFailureRateCalculator(provider)
        self.mttr = mttr or MTTRCalculator(provider)

    def calculate(
        self,
        owner: str,
        repo: str,
        period: Period,
        deployment_config: DeploymentConfig,
        failure_config: FailureConfig,
        now: Optional[datetime] = None,
    ) -> FourKeysSummary:
        """
        Calculate all four metrics and the overall performance level.

        All calculators share one reference time so their date ranges
        agree. If any calculator fails its exception propagates and no
        summary is produced.

        Args:
            owner: Repository owner (organization or user)
            repo: Repository name
            period: Look-back period
            deployment_config: Deployment detection settings
            failure_config: Failure detection settings
            now: Reference time for the period, defaults to now

        Returns:
            FourKeysSummary
        """
        if now is None:
            now = datetime.now(timezone.utc)
        date_range = resolve_period(period, now)
        period = Period(period)

        logger.info(f"Calculating Four Keys summary for {owner}/{repo} ({period.value})")

        with ThreadPoolExecutor(max_workers=4, thread_name_prefix="four-keys") as executor:
            df_future = executor.submit(
                self.deployment_frequency.calculate,
                owner, repo, period, replace(deployment_config), now,
            )
            lt_future = executor.submit(self.lead_time.calculate, owner, repo, period, now)
            cfr_future = executor.submit(
                self.change_failure_rate.calculate,
                owner, repo, period, replace(deployment_config), replace(failure_config), now,
            )
            mttr_future = executor.submit(
                self.mttr.calculate, owner, repo, period, replace(failure_config), now
            )

            deployment_frequency = df_future.result()
            lead_time = lt_future.result()
            change_failure_rate = cfr_future.result()
            mttr = mttr_future.result()

        levels = {
            "deployment_frequency": classify_deployment_frequency(
                deployment_frequency.exact_deployments_per_day
            ),
            "lead_time": classify_lead_time(lead_time.average_lead_time_hours),
            "change_failure_rate": classify_change_failure_rate(change_failure_rate.failure_rate),
            "mttr": classify_mttr(mttr.average_mttr_hours),
        }
        overall = classify_overall(levels.values())

        logger.info(f"Overall performance level for {owner}/{repo}: {overall.label}")

        return FourKeysSummary(
            repository=f"{owner}/{repo}",
            period=period,
            date_range=date_range,
            deployment_frequency=deployment_frequency,
            lead_time=lead_time,
            change_failure_rate=change_failure_rate,
            mttr=mttr,
            levels=levels,
            overall_level=overall,
        )
