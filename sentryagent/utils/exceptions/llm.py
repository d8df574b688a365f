"""Errors raised around the LLM transport."""

from sentryagent.utils.exceptions.base import SentryAgentError


class LLMError(SentryAgentError):
    pass


class LLMConfigError(LLMError):
    """Provider, model or credentials are missing or invalid."""
    pass


class LLMApiError(LLMError):
    """
    A completion call failed (rate limit, timeout, auth, provider error).

    Args:
        message: Human-readable error message.
        model: LiteLLM model name the call was made with, if known.
        cause: Optional underlying litellm exception.
    """
    def __init__(self, message: str, model: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause)
        self.model = model
