"""Exception types raised by the Four Keys metrics engine."""

from typing import Optional


class FourKeysError(Exception):
    """Base exception for every error raised by this package."""


class InvalidConfiguration(FourKeysError):
    """Raised for an unknown period, deployment method or malformed filter."""


class WorkflowNotFound(FourKeysError):
    """Raised when a named or filed deployment workflow does not exist."""

    def __init__(self, workflow: str):
        self.workflow = workflow
        super().__init__(f"Workflow '{workflow}' not found")


class UpstreamFetchFailure(FourKeysError):
    """Raised by an activity provider when a fetch against the host fails."""

    def __init__(self, operation: str, message: str, status: Optional[int] = None):
        self.operation = operation
        self.status = status
        detail = f" ({status})" if status is not None else ""
        super().__init__(f"{operation} failed{detail}: {message}")


class PartialResolutionFailure(FourKeysError):
    """
    A single tag's commit could not be resolved.

    Deployment detection logs this and skips the tag; it is never raised
    to the caller, unlike UpstreamFetchFailure on bulk listings.
    """

    def __init__(self, tag_name: str, cause: Exception):
        self.tag_name = tag_name
        self.cause = cause
        super().__init__(f"Could not resolve commit for tag {tag_name}: {cause}")
