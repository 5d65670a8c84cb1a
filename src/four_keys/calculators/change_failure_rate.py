"""Change failure rate: share of deployments that caused a failure."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..detectors.deployments import DeploymentDetector
from ..detectors.failures import FailureDetector
from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import DateRange, DeploymentConfig, FailureConfig, FailureIncident, Period
from ..periods import resolve_period

logger = get_logger(__name__)


@dataclass
class ChangeFailureRateResult:
    """Change failure rate over one period."""
    repository: str
    period: Period
    date_range: DateRange
    total_deployments: int
    failed_deployments: int
    failure_rate: float  # Percent, 0-100
    failures: List[FailureIncident] = field(default_factory=list)  # Newest first
    deployment_config: Optional[DeploymentConfig] = None
    failure_config: Optional[FailureConfig] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "repository": self.repository,
            "period": self.period.value,
            "date_range": self.date_range.to_dict(),
            "total_deployments": self.total_deployments,
            "failed_deployments": self.failed_deployments,
            "failure_rate_percent": self.failure_rate,
            "failures": [f.to_dict() for f in self.failures],
            "deployment_config": self.deployment_config.to_dict() if self.deployment_config else None,
            "failure_config": self.failure_config.to_dict() if self.failure_config else None,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


class ChangeFailureRateCalculator:
    """Relates detected failures to detected deployments."""

    def __init__(
        self,
        provider: ActivityProvider,
        deployment_detector: Optional[DeploymentDetector] = None,
        failure_detector: Optional[FailureDetector] = None,
    ):
        self.deployment_detector = deployment_detector or DeploymentDetector(provider)
        self.failure_detector = failure_detector or FailureDetector(provider)

    def calculate(
        self,
        owner: str,
        repo: str,
        period: Period,
        deployment_config: DeploymentConfig,
        failure_config: FailureConfig,
        now: Optional[datetime] = None,
    ) -> ChangeFailureRateResult:
        """
        Calculate the change failure rate as a percentage.

        With no deployments the rate is 0, even if failures were found.

        Args:
            owner: Repository owner (organization or user)
            repo: Repository name
            period: Look-back period
            deployment_config: Deployment detection settings
            failure_config: Failure detection settings
            now: Reference time for the period, defaults to now

        Returns:
            ChangeFailureRateResult
        """
        date_range = resolve_period(period, now)
        period = Period(period)

        logger.info(f"Calculating change failure rate for {owner}/{repo} ({period.value})")

        total = len(self.deployment_detector.detect(owner, repo, date_range, deployment_config))
        failures = self.failure_detector.detect(owner, repo, date_range, failure_config)
        failed = len(failures)

        rate = failed / total * 100 if total > 0 else 0.0
        if total == 0 and failed > 0:
            logger.warning(f"{failed} failures found but no deployments; reporting 0%")

        logger.info(f"Change failure rate: {failed}/{total} = {rate:.2f}%")

        return ChangeFailureRateResult(
            repository=f"{owner}/{repo}",
            period=period,
            date_range=date_range,
            total_deployments=total,
            failed_deployments=failed,
            failure_rate=round(rate, 2),
            failures=failures,
            deployment_config=deployment_config,
            failure_config=failure_config,
        )
