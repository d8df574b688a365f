"""SentryAgent exception hierarchy."""

from sentryagent.utils.exceptions.base import SentryAgentError
from sentryagent.utils.exceptions.ingest import IngestError
from sentryagent.utils.exceptions.llm import (
    LLMError,
    LLMConfigError,
    LLMApiError,
)
from sentryagent.utils.exceptions.workflow import (
    WorkflowError,
    WorkflowSchemaError,
    WorkflowNotFoundError,
    RunNotFoundError,
    WorkflowClientError,
)

__all__ = [
    "SentryAgentError",
    "IngestError",
    "LLMError",
    "LLMConfigError",
    "LLMApiError",
    "WorkflowError",
    "WorkflowSchemaError",
    "WorkflowNotFoundError",
    "RunNotFoundError",
    "WorkflowClientError",
]
