"""Domain exceptions for translation orchestration and CLI diagnostics."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised at startup when no usable upstream provider can be configured."""


class UpstreamError(RuntimeError):
    """Raised when an upstream text-generation request fails.

    Attributes:
        status_code: HTTP status code, or `None` for transport-level failures.
        body: Redacted, length-capped provider response body.
        failure_kind: Deterministic diagnostic kind (`http_error`, `timeout`, ...).
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str = "",
        failure_kind: str = "http_error",
    ) -> None:
        """Initialize upstream error metadata for retry and fallback decisions."""

        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.failure_kind = failure_kind


class UpstreamRateLimited(UpstreamError):
    """Raised when the upstream provider rejects a request for rate/quota reasons."""

    def __init__(self, message: str, *, status_code: int | None = 429, body: str = "") -> None:
        """Initialize a rate-limit rejection with the `rate_limited` failure kind."""

        super().__init__(
            message,
            status_code=status_code,
            body=body,
            failure_kind="rate_limited",
        )


class ParseError(ValueError):
    """Raised when an upstream response does not contain the expected structure."""


class CacheUnavailable(RuntimeError):
    """Raised by durable cache tiers when the backing store cannot be reached."""


class CommandStageError(RuntimeError):
    """Raised when a specific CLI command stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped command error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
