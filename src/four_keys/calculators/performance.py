"""DORA performance levels for individual metrics and overall."""

from enum import Enum
from typing import Iterable


class PerformanceTier(Enum):
    """DORA performance level, ordered Low < Medium < High < Elite."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    ELITE = "elite"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other):
        if not isinstance(other, PerformanceTier):
            return NotImplemented
        return self.rank < other.rank

    @property
    def label(self) -> str:
        return self.value.capitalize()


_RANK = {
    PerformanceTier.LOW: 0,
    PerformanceTier.MEDIUM: 1,
    PerformanceTier.HIGH: 2,
    PerformanceTier.ELITE: 3,
}


def classify_deployment_frequency(deploys_per_day: float) -> PerformanceTier:
    """Get performance level for deployment frequency."""
    if deploys_per_day >= 1:  # Daily or more
        return PerformanceTier.ELITE
    elif deploys_per_day >= 1 / 7:  # At least weekly
        return PerformanceTier.HIGH
    elif deploys_per_day >= 1 / 30:  # At least monthly
        return PerformanceTier.MEDIUM
    else:
        return PerformanceTier.LOW


def classify_lead_time(lead_time_hours: float) -> PerformanceTier:
    """Get performance level for lead time."""
    if lead_time_hours < 24:  # Less than one day
        return PerformanceTier.ELITE
    elif lead_time_hours < 168:  # Less than one week
        return PerformanceTier.HIGH
    elif lead_time_hours < 720:  # Less than one month
        return PerformanceTier.MEDIUM
    else:
        return PerformanceTier.LOW


def classify_change_failure_rate(failure_rate_percent: float) -> PerformanceTier:
    """Get performance level for change failure rate (percent)."""
    if failure_rate_percent <= 15:
        return PerformanceTier.ELITE
    elif failure_rate_percent <= 30:
        return PerformanceTier.HIGH
    elif failure_rate_percent <= 45:
        return PerformanceTier.MEDIUM
    else:
        return PerformanceTier.LOW


def classify_mttr(mttr_hours: float) -> PerformanceTier:
    """Get performance level for MTTR."""
    if mttr_hours < 1:  # Less than one hour
        return PerformanceTier.ELITE
    elif mttr_hours < 24:  # Less than one day
        return PerformanceTier.HIGH
    elif mttr_hours < 168:  # Less than one week
        return PerformanceTier.MEDIUM
    else:
        return PerformanceTier.LOW


def classify_overall(tiers: Iterable[PerformanceTier]) -> PerformanceTier:
    """
    Combine the four per-metric levels into one.

    Rules, checked in order:
        1. All Elite or High, with at least three Elite: Elite
        2. All Elite or High: High
        3. At least two Low: Low
        4. Otherwise: Medium
    """
    tiers = list(tiers)
    if len(tiers) != 4:
        raise ValueError(f"Expected 4 performance levels, got {len(tiers)}")

    elite = sum(1 for t in tiers if t == PerformanceTier.ELITE)
    high = sum(1 for t in tiers if t == PerformanceTier.HIGH)
    low = sum(1 for t in tiers if t == PerformanceTier.LOW)

    if elite + high == len(tiers):
        return PerformanceTier.ELITE if elite >= 3 else PerformanceTier.HIGH
    if low >= 2:
        return PerformanceTier.LOW
    return PerformanceTier.MEDIUM
