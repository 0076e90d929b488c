"""
Domain-specific exception hierarchy for the order pipeline.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (order ID, step name, etc.) for logging/debugging.
"""

from __future__ import annotations

from reportflow.core.constants import INVALID_KEY_ERROR_CODE


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        order_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.order_id = order_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class CredentialFetchError(PipelineError):
    """The remote token or cookie could not be fetched."""
    pass


class DownloadError(PipelineError):
    """A source file or report document could not be downloaded."""
    pass


class SubmissionError(PipelineError):
    """The storage or analysis service rejected a request or was unreachable."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        service_error: str | None = None,
        **kwargs,
    ) -> None:
        self.status_code = status_code
        self.service_error = service_error
        super().__init__(message, **kwargs)

    @property
    def is_invalid_key(self) -> bool:
        """Storage refused the object key (non-ASCII characters in the filename)."""
        return self.service_error == INVALID_KEY_ERROR_CODE


class PollTimeoutError(PipelineError):
    """The analysis job did not finish within the polling budget."""

    def __init__(self, message: str, *, elapsed_seconds: float = 0.0, **kwargs) -> None:
        self.elapsed_seconds = elapsed_seconds
        super().__init__(message, **kwargs)


class PageRemovalError(PipelineError):
    """The external page-removal tool failed or produced no output."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str | None = None,
        **kwargs,
    ) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, **kwargs)


class UploadError(PipelineError):
    """Uploading a processed document to the CDN failed."""
    pass


class RefundError(PipelineError):
    """A credit refund could not be persisted."""
    pass


class ListenerError(PipelineError):
    """The order change subscription failed."""
    pass
