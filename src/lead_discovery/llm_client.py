# llm_client.py
"""Gemini REST client used for filter translation and domain extraction."""

import re
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import config
from .errors import LLMError, LLMOverloadedError, LLMQuotaError
from .logging_utils import get_logger

QUOTA_PATTERN = re.compile(r"RESOURCE_EXHAUSTED|quota", re.IGNORECASE)
OVERLOADED_PATTERN = re.compile(r"overloaded|UNAVAILABLE", re.IGNORECASE)


class LLMClient:
    """Gemini generateContent client wrapper.

    Calls the REST API directly via requests. Models are tried in order:
    a 503/overloaded answer moves on to the next model, quota errors raise
    ``LLMQuotaError`` and any other failure raises ``LLMError``.
    """

    # Default request timeout in seconds
    DEFAULT_TIMEOUT = 30

    # Transport-level retries for connection resets and gateway errors
    MAX_RETRIES = 2
    BASE_RETRY_DELAY = 0.5

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[List[str]] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the LLM client.

        Args:
            api_key: Gemini API key. Defaults to config value.
            models: Ordered model names to try. Defaults to config value.
            base_url: API base URL. Defaults to config value.
            timeout: Request timeout in seconds.
        """
        self.logger = get_logger(__name__)

        self._api_key = api_key if api_key is not None else config.GEMINI_API_KEY
        self.models = list(models or config.GEMINI_MODELS)
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout

        self._session: Optional[requests.Session] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _get_session(self) -> requests.Session:
        """Get or create a requests session with retry configuration."""
        if self._session is None:
            self._session = requests.Session()

            retry_strategy = Retry(
                total=self.MAX_RETRIES,
                backoff_factor=self.BASE_RETRY_DELAY,
                status_forcelist=[502, 504],
                allowed_methods=["POST"],
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self._session.mount("https://", adapter)
            self._session.mount("http://", adapter)

        return self._session

    def _build_api_url(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    def _make_request(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST one generateContent request for ``model``.

        Raises:
            LLMQuotaError: On 429 or a quota/RESOURCE_EXHAUSTED message.
            LLMOverloadedError: On 503 or an overloaded message.
            LLMError: On any other failure.
        """
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

        try:
            response = self._get_session().post(
                self._build_api_url(model),
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise LLMError(f"Gemini request failed: {e}") from e

        if response.ok:
            try:
                body = response.json()
            except ValueError as e:
                raise LLMError(f"Gemini returned non-JSON body: {e}") from e
            if not isinstance(body, dict):
                raise LLMError(
                    f"Gemini returned unexpected body type: {type(body).__name__}",
                    status_code=response.status_code,
                )
            return body

        text = response.text[:500] if response.text else ""
        status = response.status_code
        if status == 429 or QUOTA_PATTERN.search(text):
            raise LLMQuotaError(f"Gemini quota exceeded ({status})", status_code=status)
        if status == 503 or OVERLOADED_PATTERN.search(text):
            raise LLMOverloadedError(f"Gemini model {model} overloaded", status_code=status)
        raise LLMError(f"Gemini API error {status}: {text}", status_code=status)

    def generate(
        self,
        prompt: str,
        temperature: float = 0.2,
        max_output_tokens: int = 600,
        response_schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate text for a single user prompt.

        Args:
            prompt: The user message.
            temperature: Sampling temperature.
            max_output_tokens: Output token budget.
            response_schema: JSON schema; when given the model is asked for JSON.

        Returns:
            The response text, stripped.

        Raises:
            LLMError: If no credential is configured or every model failed.
        """
        if not self._api_key:
            raise LLMError("Gemini API key not configured")

        generation_config: Dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
            "thinkingConfig": {"thinkingBudget": 0},
        }
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseJsonSchema"] = response_schema

        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        last_error: Optional[LLMError] = None
        for model in self.models:
            try:
                result = self._make_request(model, payload)
            except LLMOverloadedError as e:
                self.logger.info(
                    "Model overloaded, trying next",
                    extra={"model": model},
                )
                last_error = e
                continue

            self.logger.debug(
                "Gemini request completed",
                extra={"model": model, "usage": result.get("usageMetadata", {})},
            )
            return self._extract_text(result)

        raise last_error or LLMError("No Gemini models configured")

    @staticmethod
    def _extract_text(result: Dict[str, Any]) -> str:
        candidates = result.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return ""
        candidate = candidates[0]
        content = candidate.get("content") if isinstance(candidate, dict) else None
        if not isinstance(content, dict):
            return ""
        parts = content.get("parts")
        if not isinstance(parts, list):
            return ""
        return "".join(
            part["text"] for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        ).strip()

    def close(self) -> None:
        """Close the HTTP session and clean up resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "LLMClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
