"""Validation and construction of detection configuration."""

import re
from typing import Iterable, Optional, Union

from .errors import InvalidConfiguration
from .models import DeploymentConfig, DeploymentMethod, FailureConfig, Period


def parse_period(value: Union[Period, str]) -> Period:
    """Coerce a string such as ``"month"`` to a Period."""
    try:
        return Period(value)
    except ValueError:
        choices = ", ".join(p.value for p in Period)
        raise InvalidConfiguration(f"Unknown period: {value!r} (expected one of {choices})")


def _check_pattern(pattern: Optional[str], option: str) -> Optional[str]:
    if not pattern:
        return None
    try:
        re.compile(pattern)
    except re.error as e:
        raise InvalidConfiguration(f"Invalid {option} regular expression {pattern!r}: {e}")
    return pattern


def _normalize_labels(labels: Optional[Iterable[str]]) -> frozenset:
    if not labels:
        return frozenset()
    return frozenset(label.strip().lower() for label in labels if label and label.strip())


def build_deployment_config(
    method: Union[DeploymentMethod, str] = DeploymentMethod.RELEASE,
    workflow_name: Optional[str] = None,
    workflow_file: Optional[str] = None,
    tag_prefix: Optional[str] = None,
    tag_pattern: Optional[str] = None,
) -> DeploymentConfig:
    """
    Build a validated DeploymentConfig.

    Raises:
        InvalidConfiguration: If the method is unknown or the tag pattern
            does not compile
    """
    try:
        method = DeploymentMethod(method)
    except ValueError:
        choices = ", ".join(m.value for m in DeploymentMethod)
        raise InvalidConfiguration(
            f"Unknown deployment method: {method!r} (expected one of {choices})"
        )

    return DeploymentConfig(
        method=method,
        workflow_name=workflow_name or None,
        workflow_file=workflow_file or None,
        tag_prefix=tag_prefix or None,
        tag_pattern=_check_pattern(tag_pattern, "tag pattern"),
    )


def build_failure_config(
    issue_labels: Optional[Iterable[str]] = None,
    pr_labels: Optional[Iterable[str]] = None,
    pr_branch_pattern: Optional[str] = None,
    detect_workflow_failures: bool = False,
) -> FailureConfig:
    """
    Build a validated FailureConfig.

    Labels are stripped and lowercased so that matching is
    case-insensitive.

    Raises:
        InvalidConfiguration: If the branch pattern does not compile
    """
    return FailureConfig(
        issue_labels=_normalize_labels(issue_labels),
        pr_labels=_normalize_labels(pr_labels),
        pr_branch_pattern=_check_pattern(pr_branch_pattern, "PR branch pattern"),
        detect_workflow_failures=bool(detect_workflow_failures),
    )


def validate_repository(owner: str, repo: str) -> None:
    """Reject empty owner or repository names."""
    if not owner or not owner.strip():
        raise InvalidConfiguration("Repository owner must not be empty")
    if not repo or not repo.strip():
        raise InvalidConfiguration("Repository name must not be empty")
