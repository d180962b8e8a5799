# config.py
import logging
import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


DEFAULT_GEMINI_MODELS = "gemini-2.5-flash-lite,gemini-3-flash-preview,gemini-2.5-flash"


class LeadDiscoveryConfig:
    """Lead discovery configuration class that loads settings from environment variables.

    Provider credentials are all optional: a missing primary key routes
    traffic to the fallback provider, and a missing pair is reported on the
    first request rather than at startup.
    """

    def __init__(self):
        """Initialize the lead discovery configuration with environment variables."""
        self.logger = logging.getLogger(__name__)

        # Application environment
        self.APP_ENV = self._get_optional("APP_ENV", "dev")
        self.LOG_LEVEL = self._get_optional("LOG_LEVEL", "INFO")

        # Primary provider (Wiza prospect lists)
        self.WIZA_API_KEY = self._get_optional("WIZA_API_KEY")
        self.WIZA_BASE_URL = self._get_optional(
            "WIZA_BASE_URL", "https://wiza.co/api"
        )

        # Fallback provider (Hunter)
        self.HUNTER_API_KEY = self._get_optional("HUNTER_API_KEY")
        self.HUNTER_BASE_URL = self._get_optional(
            "HUNTER_BASE_URL", "https://api.hunter.io/v2"
        )

        # AI model (Gemini REST)
        self.GEMINI_API_KEY = self._get_optional(
            "GEMINI_API_KEY", self._get_optional("API_KEY")
        )
        self.GEMINI_BASE_URL = self._get_optional(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
        self.GEMINI_MODELS = self._get_list("GEMINI_MODELS", DEFAULT_GEMINI_MODELS)

        # HTTP settings
        self.HTTP_TIMEOUT_SECONDS = float(
            self._get_optional("HTTP_TIMEOUT_SECONDS", "30")
        )

        # Prospect list polling
        self.WIZA_POLL_ATTEMPTS = int(self._get_optional("WIZA_POLL_ATTEMPTS", "18"))
        self.WIZA_POLL_INTERVAL_SECONDS = float(
            self._get_optional("WIZA_POLL_INTERVAL_SECONDS", "1.5")
        )

        # Failover policy
        self.FALLBACK_ON_JOB_FAILED = self._get_bool("FALLBACK_ON_JOB_FAILED")

    @property
    def has_wiza(self) -> bool:
        """True when the primary provider key is configured."""
        return bool(self.WIZA_API_KEY)

    @property
    def has_hunter(self) -> bool:
        """True when the fallback provider key is configured."""
        return bool(self.HUNTER_API_KEY)

    @property
    def has_gemini(self) -> bool:
        """True when an AI model credential is configured."""
        return bool(self.GEMINI_API_KEY)

    def _get_optional(self, name: str, default: str = "") -> str:
        """Get an optional configuration value from environment variables.

        Args:
            name: The name of the environment variable
            default: Default value if not found (default: "")

        Returns:
            The value of the environment variable or the default value
        """
        if name in os.environ:
            return os.environ[name]
        return default

    def _get_bool(self, name: str) -> bool:
        """Get a boolean configuration value from environment variables.

        Args:
            name: The name of the environment variable

        Returns:
            True if the environment variable exists and is set to 'true' or '1', False otherwise
        """
        return name in os.environ and os.environ[name].lower() in ["true", "1"]

    def _get_list(self, name: str, default: str = "") -> List[str]:
        """Get a comma-separated list from environment variables."""
        raw = self._get_optional(name, default)
        return [item.strip() for item in raw.split(",") if item.strip()]


# Create a global instance of LeadDiscoveryConfig
config = LeadDiscoveryConfig()
