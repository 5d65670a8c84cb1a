"""Detection of failures and incidents from repository activity."""

import re
from typing import List, Optional, Pattern

from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import (
    DateRange,
    FailureConfig,
    FailureIncident,
    FailureType,
    Issue,
    MTTRIncident,
    PullRequest,
)

logger = get_logger(__name__)


def _hours_between(start, end) -> float:
    return (end - start).total_seconds() / 3600


class FailureDetector:
    """
    Detects failures as the union of hotfix pull requests, incident issues
    and failed workflow runs, each enabled by its own FailureConfig field.
    """

    def __init__(self, provider: ActivityProvider):
        self.provider = provider

    def detect(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: FailureConfig,
    ) -> List[FailureIncident]:
        """
        Collect failures that occurred within the date range.

        Returns:
            Failures, newest first
        """
        failures: List[FailureIncident] = []

        if self._wants_hotfix_prs(config):
            failures.extend(self._detect_hotfix_prs(owner, repo, date_range, config))

        if config.issue_labels:
            failures.extend(self._detect_incident_issues(owner, repo, date_range, config))

        if config.detect_workflow_failures:
            failures.extend(self._detect_workflow_failures(owner, repo, date_range))

        failures.sort(key=lambda f: f.occurred_at, reverse=True)
        logger.info(f"Detected {len(failures)} failures")
        return failures

    def detect_restorations(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: FailureConfig,
    ) -> List[MTTRIncident]:
        """
        Collect incidents that carry a detected/resolved pair.

        Incident issues run from creation to close, hotfix pull requests
        from creation to merge. Workflow failures have no resolution time
        and are not included. Durations are not checked for sign.

        Returns:
            Incidents in detection order of the sources (issues, then PRs)
        """
        incidents: List[MTTRIncident] = []

        if config.issue_labels:
            for issue in self._incident_issues(owner, repo, date_range, config):
                incidents.append(MTTRIncident(
                    issue_number=issue.number,
                    title=issue.title,
                    detected_at=issue.created_at,
                    resolved_at=issue.closed_at,
                    mttr_hours=_hours_between(issue.created_at, issue.closed_at),
                ))

        if self._wants_hotfix_prs(config):
            for pr in self._hotfix_prs(owner, repo, date_range, config):
                incidents.append(MTTRIncident(
                    pr_number=pr.number,
                    title=pr.title,
                    detected_at=pr.created_at,
                    resolved_at=pr.merged_at,
                    mttr_hours=_hours_between(pr.created_at, pr.merged_at),
                ))

        logger.info(f"Detected {len(incidents)} incidents with resolution times")
        return incidents

    @staticmethod
    def _wants_hotfix_prs(config: FailureConfig) -> bool:
        return bool(config.pr_labels or config.pr_branch_pattern)

    def _hotfix_prs(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: FailureConfig,
    ) -> List[PullRequest]:
        """Closed PRs merged in range that are labelled or branched as hotfixes."""
        branch_pattern: Optional[Pattern] = (
            re.compile(config.pr_branch_pattern) if config.pr_branch_pattern else None
        )
        wanted_labels = {label.lower() for label in config.pr_labels}

        hotfixes = []
        for pr in self.provider.list_closed_pull_requests(owner, repo):
            if pr.merged_at is None or pr.merged_at not in date_range:
                continue

            has_label = any(label.lower() in wanted_labels for label in pr.labels)
            has_branch = bool(branch_pattern and branch_pattern.search(pr.head_branch or ""))
            if has_label or has_branch:
                hotfixes.append(pr)

        logger.info(f"Detected {len(hotfixes)} hotfix PRs")
        return hotfixes

    def _incident_issues(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: FailureConfig,
    ) -> List[Issue]:
        """Closed issues (not PRs) closed in range carrying an incident label."""
        wanted_labels = {label.lower() for label in config.issue_labels}

        incidents = []
        for issue in self.provider.list_closed_issues(owner, repo):
            # Hosts list pull requests among issues
            if issue.is_pull_request:
                continue
            if issue.closed_at is None or issue.closed_at not in date_range:
                continue
            if any(label.lower() in wanted_labels for label in issue.labels):
                incidents.append(issue)

        logger.info(f"Detected {len(incidents)} incident issues")
        return incidents

    def _detect_hotfix_prs(self, owner, repo, date_range, config) -> List[FailureIncident]:
        return [
            FailureIncident(
                type=FailureType.HOTFIX_PR,
                identifier=f"#{pr.number}",
                title=pr.title,
                occurred_at=pr.merged_at,
            )
            for pr in self._hotfix_prs(owner, repo, date_range, config)
        ]

    def _detect_incident_issues(self, owner, repo, date_range, config) -> List[FailureIncident]:
        return [
            FailureIncident(
                type=FailureType.INCIDENT_ISSUE,
                identifier=f"#{issue.number}",
                title=issue.title,
                occurred_at=issue.closed_at,
            )
            for issue in self._incident_issues(owner, repo, date_range, config)
        ]

    def _detect_workflow_failures(
        self, owner: str, repo: str, date_range: DateRange
    ) -> List[FailureIncident]:
        runs = self.provider.list_workflow_runs(
            owner, repo, status="failure", created_after=date_range.start
        )

        failures = [
            FailureIncident(
                type=FailureType.WORKFLOW_FAILURE,
                identifier=f"Run #{run.id}",
                title=f"{run.name} - {run.head_branch}",
                occurred_at=run.created_at,
            )
            for run in runs
            if run.created_at in date_range
        ]

        logger.info(f"Detected {len(failures)} workflow failures")
        return failures
