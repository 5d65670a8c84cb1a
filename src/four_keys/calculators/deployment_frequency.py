"""Deployment frequency: how often a repository ships to production."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..detectors.deployments import DeploymentDetector
from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import DateRange, DeploymentConfig, Period
from ..periods import resolve_period

logger = get_logger(__name__)


@dataclass
class DeploymentFrequencyResult:
    """Deployment frequency over one period."""
    repository: str
    period: Period
    date_range: DateRange
    total_deployments: int
    deployments_per_day: float
    deployment_dates: List[datetime] = field(default_factory=list)  # Oldest first
    config: Optional[DeploymentConfig] = None

    @property
    def exact_deployments_per_day(self) -> float:
        """Unrounded rate; classify on this, not on deployments_per_day."""
        days = self.date_range.days
        return self.total_deployments / days if days > 0 else 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "repository": self.repository,
            "period": self.period.value,
            "date_range": self.date_range.to_dict(),
            "total_deployments": self.total_deployments,
            "deployments_per_day": self.deployments_per_day,
            "deployment_dates": [d.isoformat() for d in self.deployment_dates],
            "config": self.config.to_dict() if self.config else None,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


class DeploymentFrequencyCalculator:
    """Calculates deployments per day over a period."""

    def __init__(self, provider: ActivityProvider, detector: Optional[DeploymentDetector] = None):
        self.detector = detector or DeploymentDetector(provider)

    def calculate(
        self,
        owner: str,
        repo: str,
        period: Period,
        config: DeploymentConfig,
        now: Optional[datetime] = None,
    ) -> DeploymentFrequencyResult:
        """
        Calculate deployment frequency.

        Args:
            owner: Repository owner (organization or user)
            repo: Repository name
            period: Look-back period
            config: Deployment detection settings
            now: Reference time for the period, defaults to now

        Returns:
            DeploymentFrequencyResult
        """
        date_range = resolve_period(period, now)
        period = Period(period)

        logger.info(
            f"Calculating deployment frequency for {owner}/{repo} "
            f"({period.value}, method: {config.method.value})"
        )

        deployment_dates = self.detector.detect(owner, repo, date_range, config)

        total = len(deployment_dates)
        days = date_range.days
        per_day = total / days if days > 0 else 0.0

        logger.info(f"Deployment frequency: {total} deployments in {days} days ({per_day:.2f}/day)")

        return DeploymentFrequencyResult(
            repository=f"{owner}/{repo}",
            period=period,
            date_range=date_range,
            total_deployments=total,
            deployments_per_day=round(per_day, 4),
            deployment_dates=deployment_dates,
            config=config,
        )
