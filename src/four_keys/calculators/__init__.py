"""Calculators for the Four Keys (DORA) metrics."""

from .change_failure_rate import ChangeFailureRateCalculator, ChangeFailureRateResult
from .deployment_frequency import DeploymentFrequencyCalculator, DeploymentFrequencyResult
from .lead_time import LeadTimeCalculator, LeadTimeResult
from .mttr import MTTRCalculator, MTTRResult
from .performance import PerformanceTier
from .summary import FourKeysSummary, FourKeysSummaryCalculator

__all__ = [
    "ChangeFailureRateCalculator",
    "ChangeFailureRateResult",
    "DeploymentFrequencyCalculator",
    "DeploymentFrequencyResult",
    "FourKeysSummary",
    "FourKeysSummaryCalculator",
    "LeadTimeCalculator",
    "LeadTimeResult",
    "MTTRCalculator",
    "MTTRResult",
    "PerformanceTier",
]
