"""Workflow engine and workflow host exceptions."""

from sentryagent.utils.exceptions.base import SentryAgentError


class WorkflowError(SentryAgentError):
    """Base class for workflow errors (invalid run state, step failures)."""
    pass


class WorkflowSchemaError(WorkflowError):
    """A step received or produced data that does not match its declared schema."""

    def __init__(self, step_id: str, boundary: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(f"Step '{step_id}' {boundary} validation failed: {message}", cause)
        self.step_id = step_id
        self.boundary = boundary


class WorkflowNotFoundError(WorkflowError):
    """No workflow is registered under the requested id."""
    pass


class RunNotFoundError(WorkflowError):
    """No run exists with the requested id."""
    pass


class WorkflowClientError(SentryAgentError):
    """Transport failure while talking to a remote workflow host."""
    pass
