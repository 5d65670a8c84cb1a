"""Mean time to restore: incident detection to resolution."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..detectors.failures import FailureDetector
from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import DateRange, FailureConfig, MTTRIncident, Period
from ..periods import resolve_period
from . import statistics

logger = get_logger(__name__)


@dataclass
class MTTRResult:
    """Time to restore statistics over one period."""
    repository: str
    period: Period
    date_range: DateRange
    average_mttr_hours: float
    median_mttr_hours: float
    incidents: List[MTTRIncident] = field(default_factory=list)  # Most recently detected first

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "repository": self.repository,
            "period": self.period.value,
            "date_range": self.date_range.to_dict(),
            "average_mttr_hours": self.average_mttr_hours,
            "median_mttr_hours": self.median_mttr_hours,
            "incidents": [i.to_dict() for i in self.incidents],
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


class MTTRCalculator:
    """Calculates MTTR from incident issues and hotfix pull requests."""

    def __init__(self, provider: ActivityProvider, failure_detector: Optional[FailureDetector] = None):
        self.failure_detector = failure_detector or FailureDetector(provider)

    def calculate(
        self,
        owner: str,
        repo: str,
        period: Period,
        config: FailureConfig,
        now: Optional[datetime] = None,
    ) -> MTTRResult:
        """
        Calculate mean time to restore.

        Args:
            owner: Repository owner (organization or user)
            repo: Repository name
            period: Look-back period
            config: Failure detection settings
            now: Reference time for the period, defaults to now

        Returns:
            MTTRResult
        """
        date_range = resolve_period(period, now)
        period = Period(period)

        logger.info(f"Calculating MTTR for {owner}/{repo} ({period.value})")

        incidents = self.failure_detector.detect_restorations(owner, repo, date_range, config)

        hours = [i.mttr_hours for i in incidents]
        average = statistics.mean(hours)

        logger.info(f"MTTR: average {average:.2f} hours ({len(incidents)} incidents)")

        incidents = sorted(incidents, key=lambda i: i.detected_at, reverse=True)
        return MTTRResult(
            repository=f"{owner}/{repo}",
            period=period,
            date_range=date_range,
            average_mttr_hours=round(average, 2),
            median_mttr_hours=round(statistics.median(hours), 2),
            incidents=[
                MTTRIncident(
                    issue_number=i.issue_number,
                    pr_number=i.pr_number,
                    title=i.title,
                    detected_at=i.detected_at,
                    resolved_at=i.resolved_at,
                    mttr_hours=round(i.mttr_hours, 2),
                )
                for i in incidents
            ],
        )
