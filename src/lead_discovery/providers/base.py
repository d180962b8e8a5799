"""Base provider client for lead discovery.

Holds what the provider clients share:
- A requests session with default headers
- Request execution that turns non-2xx answers and transport failures
  into ``ProviderHTTPError`` (no local retries)
- Tolerant JSON decoding
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

import requests
from requests.exceptions import RequestException

from lead_discovery.config import config
from lead_discovery.errors import ProviderHTTPError
from lead_discovery.logging_utils import get_logger


class BaseProviderClient(ABC):
    """Abstract base class for provider API clients.

    Attributes:
        provider_name: Short provider identifier used in logs and errors
        base_url: Base URL for the provider API
        error_class: ProviderHTTPError subclass raised on failures
        request_timeout: Request timeout in seconds
        session: Requests session for connection pooling

    Example:
        class AcmeClient(BaseProviderClient):
            provider_name = "acme"

            def _configure_auth(self):
                self.session.headers["Authorization"] = f"Bearer {self.api_key}"
    """

    provider_name: str = ""
    base_url: str = ""
    error_class: Type[ProviderHTTPError] = ProviderHTTPError

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.api_key = api_key or ""
        if base_url:
            self.base_url = base_url
        self.request_timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        self.logger = logger or get_logger(self.__class__.__module__)
        self.session = requests.Session()
        self._configure_session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _configure_session(self) -> None:
        """Configure the requests session with default headers."""
        self.session.headers.update({
            "User-Agent": "lead-discovery/1.0",
            "Accept": "application/json",
        })
        self._configure_auth()

    @abstractmethod
    def _configure_auth(self) -> None:
        """Attach provider credentials to the session."""

    def close(self) -> None:
        """Close the requests session and release resources."""
        if self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def build_url(self, path: str) -> str:
        base = self.base_url.rstrip("/")
        path = path.lstrip("/")
        return f"{base}/{path}" if path else base

    def _error_message(self, response: requests.Response) -> str:
        """Human-readable message for a failed response; subclasses refine it."""
        return f"{self.provider_name} API error {response.status_code}"

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Make one HTTP request; failures raise ``error_class``.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Path relative to base_url
            **kwargs: Additional arguments passed to requests

        Raises:
            ProviderHTTPError: On a non-2xx response or a transport failure.
        """
        kwargs.setdefault("timeout", self.request_timeout)
        url = self.build_url(path)

        try:
            response = self.session.request(method, url, **kwargs)
        except RequestException as e:
            self.logger.error(
                "Provider request failed",
                extra={"provider": self.provider_name, "path": path, "error": str(e)},
            )
            raise self.error_class(
                f"{self.provider_name} request failed: {e}",
                provider=self.provider_name,
            ) from e

        if not response.ok:
            body = response.text[:500] if response.text else ""
            self.logger.warning(
                "Provider returned error status",
                extra={
                    "provider": self.provider_name,
                    "path": path,
                    "status_code": response.status_code,
                },
            )
            raise self.error_class(
                self._error_message(response),
                provider=self.provider_name,
                upstream_status=response.status_code,
                body=body,
            )

        return response

    @staticmethod
    def json_body(response: requests.Response) -> Dict[str, Any]:
        """Decode a JSON object body; anything else decodes to {}."""
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"configured={self.is_configured})"
        )
