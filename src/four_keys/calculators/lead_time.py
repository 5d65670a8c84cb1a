"""Lead time for changes: pull request creation to merge."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import DateRange, LeadTimeSample, Period
from ..periods import resolve_period
from . import statistics

logger = get_logger(__name__)

# Number of most recent samples returned with the result
MAX_SAMPLES = 20


@dataclass
class LeadTimeResult:
    """Lead time statistics over one period."""
    repository: str
    period: Period
    date_range: DateRange
    average_lead_time_hours: float
    median_lead_time_hours: float
    p95_lead_time_hours: float
    sample_count: int = 0  # Samples behind the statistics
    samples: List[LeadTimeSample] = field(default_factory=list)  # Most recent first

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "repository": self.repository,
            "period": self.period.value,
            "date_range": self.date_range.to_dict(),
            "average_lead_time_hours": self.average_lead_time_hours,
            "median_lead_time_hours": self.median_lead_time_hours,
            "p95_lead_time_hours": self.p95_lead_time_hours,
            "sample_count": self.sample_count,
            "samples": [s.to_dict() for s in self.samples],
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


class LeadTimeCalculator:
    """Calculates lead time from merged, non-draft pull requests."""

    def __init__(self, provider: ActivityProvider):
        self.provider = provider

    def calculate(
        self,
        owner: str,
        repo: str,
        period: Period,
        now: Optional[datetime] = None,
    ) -> LeadTimeResult:
        """
        Calculate lead time for changes.

        Statistics cover every valid sample; only the returned sample list
        is truncated.

        Args:
            owner: Repository owner (organization or user)
            repo: Repository name
            period: Look-back period
            now: Reference time for the period, defaults to now

        Returns:
            LeadTimeResult
        """
        date_range = resolve_period(period, now)
        period = Period(period)

        logger.info(f"Calculating lead time for {owner}/{repo} ({period.value})")

        samples = self._collect_samples(owner, repo, date_range)

        hours = [s.lead_time_hours for s in samples]
        average = statistics.mean(hours)

        logger.info(f"Lead time: {len(samples)} PRs, average {average:.2f} hours")

        return LeadTimeResult(
            repository=f"{owner}/{repo}",
            period=period,
            date_range=date_range,
            average_lead_time_hours=round(average, 2),
            median_lead_time_hours=round(statistics.median(hours), 2),
            p95_lead_time_hours=round(statistics.percentile(hours, 95), 2),
            sample_count=len(samples),
            samples=[
                LeadTimeSample(
                    pr_number=s.pr_number,
                    title=s.title,
                    created_at=s.created_at,
                    merged_at=s.merged_at,
                    lead_time_hours=round(s.lead_time_hours, 2),
                )
                for s in samples[:MAX_SAMPLES]
            ],
        )

    def _collect_samples(self, owner: str, repo: str, date_range: DateRange) -> List[LeadTimeSample]:
        """Build samples sorted by merge time, newest first."""
        pull_requests = self.provider.list_merged_pull_requests(
            owner, repo, since=date_range.start, until=date_range.end
        )

        samples = []
        for pr in pull_requests:
            if pr.is_draft:
                continue
            if pr.merged_at is None or pr.merged_at not in date_range:
                continue

            lead_time = (pr.merged_at - pr.created_at).total_seconds() / 3600
            # Merged before created: bad data, not an error
            if lead_time < 0:
                logger.warning(f"PR #{pr.number} has negative lead time: {lead_time:.2f} hours")
                continue

            samples.append(LeadTimeSample(
                pr_number=pr.number,
                title=pr.title,
                created_at=pr.created_at,
                merged_at=pr.merged_at,
                lead_time_hours=lead_time,
            ))

        samples.sort(key=lambda s: s.merged_at, reverse=True)
        logger.debug(f"Collected {len(samples)} lead time samples")
        return samples
