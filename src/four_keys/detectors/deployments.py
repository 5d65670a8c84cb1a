"""Detection of production deployments from repository activity."""

import re
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import List, Optional

from ..errors import (
    InvalidConfiguration,
    PartialResolutionFailure,
    UpstreamFetchFailure,
    WorkflowNotFound,
)
from ..extractors.provider import ActivityProvider
from ..logging import get_logger
from ..models import DateRange, DeploymentConfig, DeploymentMethod, Tag

logger = get_logger(__name__)


class DeploymentDetector:
    """Collects deployment timestamps using the configured detection method."""

    def __init__(self, provider: ActivityProvider, max_workers: int = 1):
        """
        Initialize the detector.

        Args:
            provider: Source of repository activity
            max_workers: Concurrent commit lookups for tag detection.
                1 resolves tags one after another.
        """
        self.provider = provider
        self.max_workers = max(1, max_workers)

    def detect(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: DeploymentConfig,
    ) -> List[datetime]:
        """
        Collect deployment timestamps within the date range.

        Returns:
            Deployment timestamps, oldest first

        Raises:
            InvalidConfiguration: If the deployment method is unknown
            WorkflowNotFound: If the configured workflow does not exist
            UpstreamFetchFailure: If a bulk listing fails
        """
        if config.method == DeploymentMethod.RELEASE:
            deployments = self._detect_releases(owner, repo, date_range)
        elif config.method == DeploymentMethod.TAG:
            deployments = self._detect_tags(owner, repo, date_range, config)
        elif config.method == DeploymentMethod.WORKFLOW:
            deployments = self._detect_workflow_runs(owner, repo, date_range, config)
        else:
            raise InvalidConfiguration(f"Unknown deployment method: {config.method!r}")

        return sorted(deployments)

    def _detect_releases(self, owner: str, repo: str, date_range: DateRange) -> List[datetime]:
        releases = self.provider.list_releases(owner, repo)

        deployments = [
            release.published_at
            for release in releases
            if not release.is_draft
            and not release.is_prerelease
            and release.published_at is not None
            and release.published_at in date_range
        ]

        logger.info(f"Detected {len(deployments)} deployments from releases")
        return deployments

    def _detect_tags(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: DeploymentConfig,
    ) -> List[datetime]:
        tags = self.provider.list_tags(owner, repo)

        if config.tag_prefix:
            tags = [tag for tag in tags if tag.name.startswith(config.tag_prefix)]
        if config.tag_pattern:
            pattern = re.compile(config.tag_pattern)
            tags = [tag for tag in tags if pattern.search(tag.name)]

        logger.debug(f"{len(tags)} tags left after prefix/pattern filtering")

        def resolve(tag: Tag) -> Optional[datetime]:
            return self._resolve_tag(owner, repo, tag)

        if self.max_workers > 1 and len(tags) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                timestamps = list(executor.map(resolve, tags))
        else:
            timestamps = [resolve(tag) for tag in tags]

        deployments = [ts for ts in timestamps if ts is not None and ts in date_range]

        logger.info(f"Detected {len(deployments)} deployments from tags")
        return deployments

    def _resolve_tag(self, owner: str, repo: str, tag: Tag) -> Optional[datetime]:
        """Commit timestamp for a tag, or None if it could not be resolved."""
        try:
            return self.provider.resolve_commit_timestamp(owner, repo, tag.commit_sha)
        except UpstreamFetchFailure as e:
            failure = PartialResolutionFailure(tag.name, e)
            logger.warning(f"Skipping tag: {failure}")
            return None

    def _detect_workflow_runs(
        self,
        owner: str,
        repo: str,
        date_range: DateRange,
        config: DeploymentConfig,
    ) -> List[datetime]:
        workflow_id = None
        if config.workflow_name or config.workflow_file:
            workflow_id = self._find_workflow_id(owner, repo, config)

        runs = self.provider.list_workflow_runs(
            owner,
            repo,
            workflow_id=workflow_id,
            status="success",
            created_after=date_range.start,
        )

        deployments = [run.created_at for run in runs if run.created_at in date_range]

        logger.info(f"Detected {len(deployments)} deployments from workflow runs")
        return deployments

    def _find_workflow_id(self, owner: str, repo: str, config: DeploymentConfig) -> int:
        workflows = self.provider.list_workflows(owner, repo)

        for workflow in workflows:
            if config.workflow_name and workflow.name == config.workflow_name:
                break
            if config.workflow_file and config.workflow_file in workflow.path:
                break
        else:
            raise WorkflowNotFound(config.workflow_name or config.workflow_file)

        logger.info(f"Using workflow '{workflow.name}' (ID: {workflow.id})")
        return workflow.id
