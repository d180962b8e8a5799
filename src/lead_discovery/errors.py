"""Error taxonomy and failover policy for the lead discovery pipeline.

Every exception raised by the provider and AI clients derives from
``LeadDiscoveryError`` and carries an ``ErrorKind``. The orchestrator never
inspects exception classes directly: it looks the kind up in
``FAILOVER_POLICY`` to decide between failing over to the fallback provider
and returning a hard failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Categories of pipeline failure."""

    BAD_REQUEST = "bad_request"
    CONFIGURATION = "configuration"
    PROVIDER_HTTP = "provider_http"
    JOB_FAILED = "job_failed"
    EMPTY_RESULT = "empty_result"


# Which kinds send the request to the fallback provider.
FAILOVER_POLICY: Dict[ErrorKind, bool] = {
    ErrorKind.BAD_REQUEST: False,
    ErrorKind.CONFIGURATION: True,
    ErrorKind.PROVIDER_HTTP: True,
    ErrorKind.JOB_FAILED: False,
    ErrorKind.EMPTY_RESULT: True,
}


def should_fail_over(kind: ErrorKind, fallback_on_job_failed: bool = False) -> bool:
    """Return True when a failure of ``kind`` should try the fallback provider.

    Args:
        kind: The failure category.
        fallback_on_job_failed: Override for failed prospect lists, which do
            not fail over by default.
    """
    if kind is ErrorKind.JOB_FAILED and fallback_on_job_failed:
        return True
    return FAILOVER_POLICY.get(kind, False)


class LeadDiscoveryError(Exception):
    """Base exception for lead discovery errors."""

    kind: ErrorKind = ErrorKind.PROVIDER_HTTP
    status_code: int = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(LeadDiscoveryError):
    """Raised when the caller's request cannot be served as given."""

    kind = ErrorKind.BAD_REQUEST
    status_code = 400


class ConfigurationError(LeadDiscoveryError):
    """Raised when a credential needed for the request is missing."""

    kind = ErrorKind.CONFIGURATION
    status_code = 500


class ProviderHTTPError(LeadDiscoveryError):
    """Raised on a non-2xx response or transport failure from a provider.

    Attributes:
        provider: Provider name (e.g. "wiza", "hunter").
        upstream_status: HTTP status returned upstream, None on transport errors.
        body: Truncated response body.
    """

    kind = ErrorKind.PROVIDER_HTTP
    status_code = 502

    def __init__(
        self,
        message: str,
        provider: str = "",
        upstream_status: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(
            message,
            details={"provider": provider, "upstream_status": upstream_status, "body": body},
        )
        self.provider = provider
        self.upstream_status = upstream_status
        self.body = body


class ProviderResponseError(ProviderHTTPError):
    """Raised when a provider answers 2xx with an unusable payload."""


class WizaError(ProviderHTTPError):
    """Raised on Wiza API failures."""


class HunterError(ProviderHTTPError):
    """Raised on Hunter API failures."""


class JobFailedError(LeadDiscoveryError):
    """Raised when a prospect list reports a failure status."""

    kind = ErrorKind.JOB_FAILED
    status_code = 500


class LLMError(Exception):
    """Base exception for AI model client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMQuotaError(LLMError):
    """Raised when the AI model rejects a call for quota or rate limits."""


class LLMOverloadedError(LLMError):
    """Raised when a model answers 503 or reports it is overloaded."""


@dataclass
class StageResult(Generic[T]):
    """Outcome of one pipeline stage.

    A stage may carry a value even when it failed: an empty primary result
    keeps its (empty) table so the orchestrator can still return it.
    """

    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[LeadDiscoveryError] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: Optional[LeadDiscoveryError] = None,
        value: Optional[T] = None,
    ) -> "StageResult[T]":
        return cls(value=value, error_kind=kind, error=error)
