"""Root of the SentryAgent exception hierarchy."""

from typing import Any, Dict


class SentryAgentError(Exception):
    """
    Raised for every failure SentryAgent reports on purpose.

    Args:
        message: Human-readable error message.
        cause: Optional underlying exception, chained as ``__cause__``.
    """
    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        """JSON error body used by the HTTP layer."""
        return {"error": str(self), "errorType": type(self).__name__}
