"""Deployment and failure detection strategies."""

from .deployments import DeploymentDetector
from .failures import FailureDetector

__all__ = ["DeploymentDetector", "FailureDetector"]
