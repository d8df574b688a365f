"""Repository ingestion exceptions."""

from sentryagent.utils.exceptions.base import SentryAgentError


class IngestError(SentryAgentError):
    """
    The ingestion service could not be reached or answered with a non-2xx status.

    Args:
        message: Human-readable error message.
        status_code: HTTP status returned by the service, if any.
        body: Response body returned by the service, if any.
        cause: Optional underlying exception.
    """
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.status_code = status_code
        self.body = body
