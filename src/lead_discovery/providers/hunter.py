"""Hunter client and the fallback contact search built on it.

Hunter answers synchronously. The fallback search first asks the AI model
whether the request names a single company domain; if not, it uses Hunter's
natural-language company discovery and collects emails per company.
"""

import math
import re
from typing import Any, Dict, List, Optional

import requests

from lead_discovery.config import config
from lead_discovery.contacts import hunter_email_to_raw, normalize_contact
from lead_discovery.errors import HunterError, LLMError
from lead_discovery.llm_client import LLMClient
from lead_discovery.logging_utils import get_logger
from lead_discovery.models import NormalizedContact
from lead_discovery.providers.base import BaseProviderClient

DOMAIN_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*\.[a-z]{2,}$", re.IGNORECASE)

MAX_HUNTER_LIMIT = 100
MAX_DISCOVERED_COMPANIES = 5
MAX_DOMAIN_ANSWER_LENGTH = 100


class HunterClient(BaseProviderClient):
    """Client for the Hunter v2 API.

    GET requests carry the key as the ``api_key`` query parameter; POST
    requests send it as a bearer token.
    """

    provider_name = "hunter"
    error_class = HunterError

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else config.HUNTER_API_KEY,
            base_url=base_url or config.HUNTER_BASE_URL,
            timeout=timeout,
        )

    def _configure_auth(self) -> None:
        # Credentials depend on the method, see request().
        self.session.headers["Content-Type"] = "application/json"

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        if method.upper() == "GET":
            params = dict(kwargs.pop("params", None) or {})
            params["api_key"] = self.api_key
            kwargs["params"] = params
        else:
            headers = dict(kwargs.pop("headers", None) or {})
            headers["Authorization"] = f"Bearer {self.api_key}"
            kwargs["headers"] = headers
        return super().request(method, path, **kwargs)

    def _error_message(self, response: requests.Response) -> str:
        errors = self.json_body(response).get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            message = errors[0].get("details") or errors[0].get("id")
            if message:
                return str(message)
        return f"Hunter API error: {response.status_code}"

    def domain_search(
        self,
        domain: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        type: Optional[str] = None,
        seniority: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Find the email addresses Hunter knows for ``domain``.

        Returns:
            The ``data`` object: ``organization`` plus an ``emails`` list.
        """
        params: Dict[str, Any] = {"domain": domain}
        optional = {
            "limit": limit,
            "offset": offset,
            "type": type,
            "seniority": seniority,
            "department": department,
        }
        params.update({key: value for key, value in optional.items() if value})

        data = self.json_body(self.request("GET", "/domain-search", params=params)).get("data")
        if not isinstance(data, dict):
            return {"organization": None, "emails": []}
        emails = data.get("emails")
        data["emails"] = [e for e in emails if isinstance(e, dict)] if isinstance(emails, list) else []
        return data

    def discover(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Find companies matching a natural-language query."""
        response = self.request("POST", "/discover", json={"query": query, "limit": limit})
        data = self.json_body(response).get("data")
        return [company for company in data if isinstance(company, dict)] if isinstance(data, list) else []


class HunterFallbackSearch:
    """Two-stage contact search against Hunter.

    Example:
        >>> fallback = HunterFallbackSearch(HunterClient(), LLMClient())
        >>> contacts = fallback.search("engineers at stripe.com", 10)
    """

    DOMAIN_TEMPERATURE = 0.1
    DOMAIN_MAX_TOKENS = 50

    def __init__(self, hunter_client: HunterClient, llm_client: Optional[LLMClient] = None):
        self.hunter = hunter_client
        self.llm_client = llm_client or LLMClient()
        self.logger = get_logger(__name__)

    @property
    def is_configured(self) -> bool:
        return self.hunter.is_configured

    def extract_domain(self, prompt: str) -> Optional[str]:
        """Ask the AI model for the one company domain named in ``prompt``.

        Returns None when no domain is named or the model is unavailable.
        """
        if not self.llm_client.is_configured:
            return None

        try:
            text = self.llm_client.generate(
                "Extract the company domain from this request. Return ONLY the "
                'domain (e.g., "stripe.com") or "none" if no specific company is '
                f"mentioned.\n\nRequest: {prompt}",
                temperature=self.DOMAIN_TEMPERATURE,
                max_output_tokens=self.DOMAIN_MAX_TOKENS,
            )
        except LLMError as e:
            self.logger.warning("Domain extraction failed", extra={"error": str(e)})
            return None

        answer = text.strip().strip('"').lower()
        if not answer or answer == "none" or len(answer) > MAX_DOMAIN_ANSWER_LENGTH:
            return None
        return answer if DOMAIN_PATTERN.match(answer) else None

    def _contacts_for_domain(self, domain: str, limit: int) -> List[NormalizedContact]:
        data = self.hunter.domain_search(domain, limit=limit)
        organization = data.get("organization")
        return [
            normalize_contact(hunter_email_to_raw(email, domain, organization))
            for email in data["emails"]
        ]

    def _discover_contacts(self, prompt: str, size: int) -> List[NormalizedContact]:
        companies = self.hunter.discover(prompt, min(size, MAX_HUNTER_LIMIT))
        per_company = math.ceil(size / MAX_DISCOVERED_COMPANIES)

        gathered: List[NormalizedContact] = []
        seen_domains = set()
        for company in companies:
            domain = str(company.get("domain") or "").strip().lower()
            if not domain or domain in seen_domains:
                continue
            seen_domains.add(domain)

            try:
                contacts = self._contacts_for_domain(domain, per_company)
            except HunterError as e:
                self.logger.warning(
                    "Skipping company after Hunter error",
                    extra={"domain": domain, "error": str(e)},
                )
                contacts = []

            gathered.extend(contacts[:size - len(gathered)])
            if len(gathered) >= size or len(seen_domains) >= MAX_DISCOVERED_COMPANIES:
                break
        return gathered

    def search(self, prompt: str, size: int) -> Optional[List[NormalizedContact]]:
        """Find up to ``size`` contacts for ``prompt``.

        Returns:
            The contacts, or None when Hunter is unconfigured, fails, or
            finds nothing.
        """
        if not self.is_configured:
            self.logger.info("Hunter API key not configured")
            return None

        try:
            domain = self.extract_domain(prompt)
            if domain:
                self.logger.info("Trying Hunter domain search", extra={"domain": domain})
                contacts = self._contacts_for_domain(domain, min(size, MAX_HUNTER_LIMIT))
                if contacts:
                    return contacts[:size]

            self.logger.info("Trying Hunter discovery")
            contacts = self._discover_contacts(prompt, size)
        except HunterError as e:
            self.logger.error(
                "Hunter fallback failed",
                extra={"error": str(e), "upstream_status": e.upstream_status},
            )
            return None

        if not contacts:
            self.logger.info("No results from Hunter")
            return None
        return contacts
