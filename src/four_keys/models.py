"""Data models for the Four Keys metrics engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional


class Period(Enum):
    """Look-back window for metric aggregation, anchored to now."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] window."""

    start: datetime
    end: datetime

    def __contains__(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days covered, counting both ends."""
        return (self.end - self.start).days + 1

    def to_dict(self) -> dict:
        return {"from": self.start.isoformat(), "to": self.end.isoformat()}


class DeploymentMethod(Enum):
    """Source of deployment events."""
    WORKFLOW = "workflow"
    RELEASE = "release"
    TAG = "tag"


@dataclass(frozen=True)
class DeploymentConfig:
    """How deployments are detected for a repository."""

    method: DeploymentMethod = DeploymentMethod.RELEASE
    workflow_name: Optional[str] = None
    workflow_file: Optional[str] = None
    # Prefix is applied before the pattern when both are set
    tag_prefix: Optional[str] = None
    tag_pattern: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "method": self.method.value,
            "workflow_name": self.workflow_name,
            "workflow_file": self.workflow_file,
            "tag_prefix": self.tag_prefix,
            "tag_pattern": self.tag_pattern,
        }


@dataclass(frozen=True)
class FailureConfig:
    """Which signals count as failures. Active signals are unioned."""

    issue_labels: FrozenSet[str] = frozenset()
    pr_labels: FrozenSet[str] = frozenset()
    pr_branch_pattern: Optional[str] = None
    detect_workflow_failures: bool = False

    def to_dict(self) -> dict:
        return {
            "issue_labels": sorted(self.issue_labels),
            "pr_labels": sorted(self.pr_labels),
            "pr_branch_pattern": self.pr_branch_pattern,
            "detect_workflow_failures": self.detect_workflow_failures,
        }


@dataclass
class Release:
    """A published (or draft) release."""

    tag_name: str
    name: str
    published_at: Optional[datetime]
    is_draft: bool = False
    is_prerelease: bool = False


@dataclass
class Tag:
    """A git tag and the commit it points at."""

    name: str
    commit_sha: str


@dataclass
class Workflow:
    """A CI workflow definition."""

    id: int
    name: str
    path: str


@dataclass
class WorkflowRun:
    """One execution of a CI workflow."""

    id: int
    name: str
    conclusion: Optional[str]
    created_at: datetime
    head_branch: Optional[str] = None
    workflow_id: Optional[int] = None


@dataclass
class PullRequest:
    """Represents a pull request."""

    number: int
    title: str
    created_at: datetime
    merged_at: Optional[datetime]
    is_draft: bool = False
    labels: List[str] = field(default_factory=list)
    head_branch: str = ""


@dataclass
class Issue:
    """Represents an issue. Hosts may list pull requests as issues too."""

    number: int
    title: str
    created_at: datetime
    closed_at: Optional[datetime]
    labels: List[str] = field(default_factory=list)
    is_pull_request: bool = False


class FailureType(Enum):
    """Signal a failure was derived from."""
    WORKFLOW_FAILURE = "workflow_failure"
    HOTFIX_PR = "hotfix_pr"
    INCIDENT_ISSUE = "incident_issue"


@dataclass(frozen=True)
class FailureIncident:
    """A failure observed in the date range."""

    type: FailureType
    identifier: str
    title: str
    occurred_at: datetime

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "identifier": self.identifier,
            "title": self.title,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class LeadTimeSample:
    """Lead time of one merged pull request."""

    pr_number: int
    title: str
    created_at: datetime
    merged_at: datetime
    lead_time_hours: float

    def to_dict(self) -> dict:
        return {
            "pr_number": self.pr_number,
            "title": self.title,
            "created_at": self.created_at.isoformat(),
            "merged_at": self.merged_at.isoformat(),
            "lead_time_hours": self.lead_time_hours,
        }


@dataclass(frozen=True)
class MTTRIncident:
    """An incident with its detection and resolution times.

    Exactly one of issue_number / pr_number is set.
    """

    title: str
    detected_at: datetime
    resolved_at: datetime
    mttr_hours: float
    issue_number: Optional[int] = None
    pr_number: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "issue_number": self.issue_number,
            "pr_number": self.pr_number,
            "title": self.title,
            "detected_at": self.detected_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat(),
            "mttr_hours": self.mttr_hours,
        }
