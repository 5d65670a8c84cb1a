"""Interface to the repository hosting platform."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models import Issue, PullRequest, Release, Tag, Workflow, WorkflowRun


class ActivityProvider(ABC):
    """
    Read-only access to a repository's activity history.

    Implementations own authentication, pagination and retries, and raise
    UpstreamFetchFailure when a fetch cannot be completed. All datetimes
    are timezone-aware.
    """

    @abstractmethod
    def list_releases(self, owner: str, repo: str) -> List[Release]:
        """All releases, including drafts and prereleases."""

    @abstractmethod
    def list_tags(self, owner: str, repo: str) -> List[Tag]:
        """All tags with the commit each points at."""

    @abstractmethod
    def resolve_commit_timestamp(self, owner: str, repo: str, commit_sha: str) -> datetime:
        """Author timestamp of a commit."""

    @abstractmethod
    def list_workflows(self, owner: str, repo: str) -> List[Workflow]:
        """CI workflows defined in the repository."""

    @abstractmethod
    def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        workflow_id: Optional[int] = None,
        status: Optional[str] = None,
        created_after: Optional[datetime] = None,
    ) -> List[WorkflowRun]:
        """
        Workflow runs, optionally limited to one workflow, a conclusion
        (``success``/``failure``) and runs created at or after a time.
        """

    @abstractmethod
    def list_merged_pull_requests(
        self,
        owner: str,
        repo: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[PullRequest]:
        """Merged pull requests whose merge time falls in [since, until]."""

    @abstractmethod
    def list_closed_pull_requests(self, owner: str, repo: str) -> List[PullRequest]:
        """Closed pull requests, merged or not."""

    @abstractmethod
    def list_closed_issues(self, owner: str, repo: str) -> List[Issue]:
        """Closed issues. May include pull requests flagged is_pull_request."""
