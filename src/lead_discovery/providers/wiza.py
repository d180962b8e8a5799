"""Wiza prospect list client.

Wiza builds prospect lists asynchronously: a list is created from a filter
set, polled until it reports a terminal status, and then its contacts are
fetched. Wiza also offers a synchronous prospect search.
"""

import math
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from lead_discovery.config import config
from lead_discovery.errors import ProviderResponseError, WizaError
from lead_discovery.models import FilterSet, JobStatus, ProspectJob
from lead_discovery.polling import PollingPolicy, classify_list_status
from lead_discovery.providers.base import BaseProviderClient

MAX_LIST_NAME_LENGTH = 120


def positive_list_id(value: Any) -> Optional[str]:
    """Return ``value`` as a list id string if it is a positive whole number.

    Accepts ints, integral floats and numeric strings ("77", "123.0").
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, int) and value > 0:
        return str(value)
    return None


class WizaClient(BaseProviderClient):
    """Client for the Wiza prospect API.

    Example:
        >>> client = WizaClient(api_key="...")
        >>> job = client.create_job("Researchr: R&D in Toronto", filters, 10)
        >>> job = client.wait(job, PollingPolicy())
        >>> contacts = client.fetch_contacts(job.id)
    """

    provider_name = "wiza"
    error_class = WizaError

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(
            api_key=api_key if api_key is not None else config.WIZA_API_KEY,
            base_url=base_url or config.WIZA_BASE_URL,
            timeout=timeout,
        )

    def _configure_auth(self) -> None:
        self.session.headers["Authorization"] = f"Bearer {self.api_key}"

    def _error_message(self, response: requests.Response) -> str:
        return f"Wiza request failed ({response.status_code}): {response.text[:200]}"

    def create_job(
        self,
        name: str,
        filters: FilterSet,
        max_profiles: int,
    ) -> ProspectJob:
        """Create a prospect list job.

        Args:
            name: List name; truncated to 120 characters.
            filters: Complete filter set.
            max_profiles: Maximum number of profiles to collect.

        Raises:
            WizaError: On a non-2xx response.
            ProviderResponseError: If the response carries no list id.
        """
        list_name = name[:MAX_LIST_NAME_LENGTH]
        response = self.request(
            "POST",
            "/prospects/create_prospect_list",
            json={
                "list": {
                    "name": list_name,
                    "max_profiles": max_profiles,
                    "enrichment_level": "partial",
                    "email_options": {
                        "accept_work": True,
                        "accept_personal": True,
                        "accept_generic": True,
                    },
                },
                "filters": filters.model_dump(),
            },
        )

        data = self.json_body(response).get("data") or {}
        list_id = positive_list_id(data.get("id")) if isinstance(data, dict) else None
        if list_id is None:
            raise ProviderResponseError(
                "Wiza create_prospect_list returned no list id",
                provider=self.provider_name,
                upstream_status=response.status_code,
            )

        job = ProspectJob(id=list_id, name=list_name, provider_name=self.provider_name)
        self.logger.info(
            "Created prospect list",
            extra={"list_id": job.id, "max_profiles": max_profiles},
        )
        return job

    def poll(self, job: ProspectJob) -> ProspectJob:
        """Check a list's status once and advance the job accordingly."""
        response = self.request("GET", f"/lists/{quote(job.id, safe='')}")
        payload = self.json_body(response)
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}

        raw_status = data.get("status")
        job.provider_status = str(raw_status) if raw_status is not None else ""
        job.payload = payload
        job.attempts += 1
        if not job.name and isinstance(data.get("name"), str):
            job.name = data["name"]

        job.transition(classify_list_status(job.provider_status))
        self.logger.debug(
            "Polled prospect list",
            extra={"list_id": job.id, "provider_status": job.provider_status, "attempt": job.attempts},
        )
        return job

    def wait(self, job: ProspectJob, policy: PollingPolicy) -> ProspectJob:
        """Poll ``job`` under ``policy`` until terminal or timed out."""
        return policy.run(job, self.poll)

    def resume(self, job_id: str) -> ProspectJob:
        """Rebuild a job handle for a list created by an earlier request."""
        return ProspectJob(id=job_id, status=JobStatus.POLLING, provider_name=self.provider_name)

    def fetch_contacts(self, job_id: str) -> List[Dict[str, Any]]:
        """Fetch the people of a completed list; a non-list payload yields []."""
        response = self.request(
            "GET",
            f"/lists/{quote(job_id, safe='')}/contacts",
            params={"segment": "people"},
        )
        data = self.json_body(response).get("data")
        contacts = [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []
        self.logger.info(
            "Fetched list contacts",
            extra={"list_id": job_id, "count": len(contacts)},
        )
        return contacts

    def prospect_search(self, filters: FilterSet, size: int) -> Dict[str, Any]:
        """Run a synchronous prospect search.

        Returns:
            The ``data`` object of the response, ``{"total", "profiles"}``.
        """
        response = self.request(
            "POST",
            "/prospects/search",
            json={"size": size, "filters": filters.model_dump()},
        )
        data = self.json_body(response).get("data")
        if not isinstance(data, dict):
            data = {}
        profiles = data.get("profiles") if isinstance(data.get("profiles"), list) else []
        total = data.get("total")
        return {
            "total": total if isinstance(total, int) and not isinstance(total, bool) else len(profiles),
            "profiles": profiles,
        }
