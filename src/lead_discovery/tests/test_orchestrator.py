# src/lead_discovery/tests/test_orchestrator.py
"""
Unit tests for the lead table pipeline.

Provider clients are replaced with fakes; polling uses a no-op sleep.

Tests cover:
- Primary success, in-progress (202), failed and empty list outcomes
- Failover on provider errors and empty results
- Resuming an existing list
- Missing primary and fallback credentials
- Fallback discovery aggregation
- Response body rendering
- Synchronous prospect search
"""
import os
import pytest
from unittest.mock import MagicMock, patch

from lead_discovery.config import LeadDiscoveryConfig
from lead_discovery.errors import ErrorKind, WizaError
from lead_discovery.models import (
    CONTACT_COLUMNS,
    FilterSet,
    JobStatus,
    NormalizedContact,
    Provider,
    ProspectJob,
    ProspectSearchRequest,
    SearchRequest,
)
from lead_discovery.orchestrator import LeadTablePipeline, MISSING_PRIMARY_MESSAGE, PipelineOutcome
from lead_discovery.polling import PollingPolicy, classify_list_status
from lead_discovery.providers.hunter import HunterFallbackSearch
from lead_discovery.translator import QueryTranslator


def make_settings(**env):
    with patch.dict(os.environ, env, clear=True):
        return LeadDiscoveryConfig()


def make_wiza(statuses=("complete",), contacts=None, configured=True):
    """Fake Wiza client whose list walks through the given raw statuses."""
    wiza = MagicMock()
    wiza.is_configured = configured
    wiza.create_job.side_effect = lambda name, filters, size: ProspectJob(id="4821", name=name[:120])
    wiza.resume.side_effect = lambda job_id: ProspectJob(id=job_id, status=JobStatus.POLLING)

    remaining = list(statuses)

    def poll(job):
        raw = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        job.attempts += 1
        job.provider_status = raw
        job.payload = {"data": {"status": raw, "name": "Saved list"}}
        job.name = job.name or "Saved list"
        job.transition(classify_list_status(raw))
        return job

    wiza.poll.side_effect = poll
    wiza.wait.side_effect = lambda job, policy: policy.run(job, wiza.poll)
    wiza.fetch_contacts.return_value = contacts if contacts is not None else []
    return wiza


def make_fallback(contacts=None):
    fallback = MagicMock()
    fallback.is_configured = True
    fallback.search.return_value = contacts
    return fallback


def make_translator():
    translator = MagicMock()
    translator.translate.return_value = FilterSet(company_summary=["R&D"])
    return translator


def make_pipeline(wiza, fallback=None, translator=None, settings=None, attempts=18):
    return LeadTablePipeline(
        settings=settings or make_settings(WIZA_API_KEY="k"),
        wiza_client=wiza,
        fallback=fallback,
        translator=translator or make_translator(),
        polling_policy=PollingPolicy(max_attempts=attempts, interval_seconds=1.5, sleep=MagicMock()),
    )


WIZA_CONTACTS = [
    {"full_name": "Ada Lovelace", "email": "ada@engines.io", "job_title": "CTO"},
    {"full_name": "Grace Hopper", "email": "grace@navy.mil"},
]

HUNTER_CONTACTS = [
    NormalizedContact(full_name="Alan Turing", email="alan@acme.com", company_domain="acme.com"),
    NormalizedContact(full_name="Joan Clarke", email="joan@acme.com", company_domain="acme.com"),
    NormalizedContact(full_name="Tommy Flowers", email="tommy@acme.com", company_domain="acme.com"),
]


class TestPrimaryPath:
    """Tests for outcomes decided by the primary provider."""

    @pytest.mark.unit
    def test_complete_list_returns_contacts(self):
        """Test a completed list becomes a 200 primary table."""
        wiza = make_wiza(statuses=["queued", "complete"], contacts=WIZA_CONTACTS)
        pipeline = make_pipeline(wiza)

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto", size=5))

        assert outcome.status_code == 200
        assert outcome.provider is Provider.PRIMARY
        assert outcome.table_spec.title == "Wiza Contacts"
        assert outcome.table_spec.description == "Contacts generated from Wiza for: R&D in Toronto"
        assert outcome.table_spec.columns == CONTACT_COLUMNS
        assert outcome.table_spec.rows[0][:4] == ["Ada Lovelace", "CTO", "", "ada@engines.io"]
        assert outcome.job_meta.total == 2
        assert outcome.job_meta.returned == 2
        assert outcome.job_meta.list_id == "4821"
        assert outcome.job_meta.list_status == "complete"
        assert outcome.job_meta.filters["company_summary"] == ["R&D"]

    @pytest.mark.unit
    def test_list_name_and_size_forwarded(self):
        """Test the list is named after the prompt and sized from the request."""
        wiza = make_wiza(contacts=WIZA_CONTACTS)
        translator = make_translator()
        pipeline = make_pipeline(wiza, translator=translator)

        pipeline.run(SearchRequest(prompt="x" * 200, size=7))

        name, filters, size = wiza.create_job.call_args[0]
        assert name.startswith("Researchr: x")
        assert size == 7
        assert filters == translator.translate.return_value

    @pytest.mark.unit
    def test_heuristic_filters_reach_the_provider(self):
        """Test without an AI key the heuristic filters are submitted."""
        wiza = make_wiza(contacts=WIZA_CONTACTS)
        llm = MagicMock()
        llm.is_configured = False
        pipeline = make_pipeline(wiza, translator=QueryTranslator(llm))

        pipeline.run(SearchRequest(prompt="R&D companies in Toronto"))

        filters = wiza.create_job.call_args[0][1]
        assert [h.model_dump() for h in filters.company_location] == [{"v": "Toronto", "b": "city"}]
        assert "research and development" in filters.company_summary

    @pytest.mark.unit
    def test_still_building_returns_202(self):
        """Test a list queued for the whole budget answers 202."""
        wiza = make_wiza(statuses=["queued"])
        fallback = make_fallback(HUNTER_CONTACTS)
        pipeline = make_pipeline(wiza, fallback=fallback)

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert wiza.poll.call_count == 18
        assert outcome.status_code == 202
        assert outcome.provider is None
        assert outcome.table_spec.columns == ["Status", "List ID"]
        assert outcome.table_spec.rows == [["queued", "4821"]]
        assert outcome.job_meta.list_id == "4821"
        assert outcome.job_meta.list_status == "queued"
        fallback.search.assert_not_called()
        wiza.fetch_contacts.assert_not_called()

    @pytest.mark.unit
    def test_failed_list_returns_500_without_fallback(self):
        """Test a failed list is a hard failure carrying the status payload."""
        wiza = make_wiza(statuses=["failed"])
        fallback = make_fallback(HUNTER_CONTACTS)
        pipeline = make_pipeline(wiza, fallback=fallback)

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert outcome.status_code == 500
        assert outcome.error == "Wiza list failed (failed)"
        assert outcome.details == {"data": {"status": "failed", "name": "Saved list"}}
        fallback.search.assert_not_called()

    @pytest.mark.unit
    def test_failed_list_can_fail_over_when_enabled(self):
        """Test FALLBACK_ON_JOB_FAILED sends failed lists to the fallback."""
        wiza = make_wiza(statuses=["error"])
        fallback = make_fallback(HUNTER_CONTACTS)
        settings = make_settings(WIZA_API_KEY="k", FALLBACK_ON_JOB_FAILED="true")
        pipeline = make_pipeline(wiza, fallback=fallback, settings=settings)

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert outcome.status_code == 200
        assert outcome.provider is Provider.FALLBACK

    @pytest.mark.unit
    def test_resume_existing_list(self):
        """Test a list id skips translation and creation."""
        wiza = make_wiza(contacts=WIZA_CONTACTS)
        translator = make_translator()
        pipeline = make_pipeline(wiza, translator=translator)

        outcome = pipeline.run(SearchRequest.model_validate({"listId": 99}))

        translator.translate.assert_not_called()
        wiza.create_job.assert_not_called()
        wiza.resume.assert_called_once_with("99")
        wiza.fetch_contacts.assert_called_once_with("99")
        assert outcome.status_code == 200
        assert outcome.table_spec.description == "Contacts generated from Wiza for: Saved list"
        assert outcome.job_meta.filters is None


class TestFailover:
    """Tests for fallback decisions."""

    @pytest.mark.unit
    def test_empty_list_uses_fallback(self):
        """Test an empty primary list fails over to Hunter."""
        wiza = make_wiza(contacts=[])
        hunter = MagicMock()
        hunter.is_configured = True
        hunter.domain_search.return_value = {
            "organization": "Acme",
            "emails": [
                {"value": f"p{i}@acme.com", "first_name": "P", "last_name": str(i)}
                for i in range(3)
            ],
        }
        llm = MagicMock()
        llm.is_configured = True
        llm.generate.return_value = "acme.com"
        pipeline = make_pipeline(wiza, fallback=HunterFallbackSearch(hunter, llm))

        outcome = pipeline.run(SearchRequest(prompt="people at acme.com"))

        assert outcome.status_code == 200
        assert outcome.provider is Provider.FALLBACK
        assert len(outcome.table_spec.rows) == 3
        assert outcome.table_spec.title == "Hunter Contacts"
        assert outcome.table_spec.description == "Contacts found via Hunter for: people at acme.com"
        assert outcome.job_meta is None

    @pytest.mark.unit
    def test_empty_list_and_empty_fallback_returns_empty_table(self):
        """Test an empty primary result is returned when the fallback finds nothing."""
        wiza = make_wiza(contacts=[])
        fallback = make_fallback(None)
        pipeline = make_pipeline(wiza, fallback=fallback)

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        fallback.search.assert_called_once_with("R&D in Toronto", 10)
        assert outcome.status_code == 200
        assert outcome.provider is Provider.PRIMARY
        assert outcome.table_spec.rows == []
        assert outcome.job_meta.total == 0

    @pytest.mark.unit
    def test_empty_list_without_fallback_returns_empty_table(self):
        wiza = make_wiza(contacts=[])
        outcome = make_pipeline(wiza, fallback=None).run(SearchRequest(prompt="x"))

        assert outcome.status_code == 200
        assert outcome.table_spec.rows == []

    @pytest.mark.unit
    def test_provider_error_uses_fallback(self):
        """Test a primary HTTP error fails over."""
        wiza = make_wiza()
        wiza.create_job.side_effect = WizaError("Wiza down", provider="wiza", upstream_status=503, body="down")
        fallback = make_fallback(HUNTER_CONTACTS)
        pipeline = make_pipeline(wiza, fallback=fallback)

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto", size=3))

        fallback.search.assert_called_once_with("R&D in Toronto", 3)
        assert outcome.status_code == 200
        assert outcome.provider is Provider.FALLBACK

    @pytest.mark.unit
    def test_provider_error_and_empty_fallback_returns_primary_error(self):
        """Test the primary error surfaces when the fallback is empty."""
        wiza = make_wiza()
        wiza.fetch_contacts.side_effect = WizaError(
            "Wiza request failed (500): boom", provider="wiza", upstream_status=500, body="boom"
        )
        pipeline = make_pipeline(wiza, fallback=make_fallback(None))

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert outcome.status_code == 502
        assert outcome.error == "Wiza request failed (500): boom"
        assert outcome.details == {"provider": "wiza", "upstream_status": 500, "body": "boom"}
        assert outcome.table_spec is None

    @pytest.mark.unit
    def test_provider_error_without_prompt_skips_fallback(self):
        """Test a resumed list with no prompt cannot fail over."""
        wiza = make_wiza()
        wiza.poll.side_effect = WizaError("gone", provider="wiza", upstream_status=404)
        fallback = make_fallback(HUNTER_CONTACTS)
        pipeline = make_pipeline(wiza, fallback=fallback)

        outcome = pipeline.run(SearchRequest.model_validate({"listId": "5"}))

        fallback.search.assert_not_called()
        assert outcome.status_code == 502


class TestMissingPrimary:
    """Tests for requests without a primary key."""

    @pytest.mark.unit
    def test_fallback_serves_when_primary_unconfigured(self):
        wiza = make_wiza(configured=False)
        fallback = make_fallback(HUNTER_CONTACTS)
        pipeline = make_pipeline(wiza, fallback=fallback, settings=make_settings(HUNTER_API_KEY="h"))

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        wiza.create_job.assert_not_called()
        assert outcome.status_code == 200
        assert outcome.provider is Provider.FALLBACK
        assert len(outcome.table_spec.rows) == 3

    @pytest.mark.unit
    def test_fallback_empty_is_configuration_error(self):
        wiza = make_wiza(configured=False)
        pipeline = make_pipeline(wiza, fallback=make_fallback(None), settings=make_settings())

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert outcome.status_code == 500
        assert outcome.error == MISSING_PRIMARY_MESSAGE

    @pytest.mark.unit
    def test_missing_key_goes_through_failover_policy(self):
        """Test a missing primary key is routed by the configuration policy entry."""
        wiza = make_wiza(configured=False)
        fallback = make_fallback(HUNTER_CONTACTS)
        pipeline = make_pipeline(wiza, fallback=fallback, settings=make_settings(HUNTER_API_KEY="h"))

        with patch("lead_discovery.orchestrator.should_fail_over", return_value=False) as policy:
            outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert policy.call_args[0][0] is ErrorKind.CONFIGURATION
        fallback.search.assert_not_called()
        assert outcome.status_code == 500
        assert outcome.error == MISSING_PRIMARY_MESSAGE

    @pytest.mark.unit
    def test_nothing_configured(self):
        """Test no provider keys at all gives a 500 and no table."""
        pipeline = LeadTablePipeline(settings=make_settings())

        outcome = pipeline.run(SearchRequest(prompt="R&D in Toronto"))

        assert pipeline.fallback is None
        assert outcome.status_code == 500
        assert outcome.error == MISSING_PRIMARY_MESSAGE
        assert outcome.table_spec is None
        assert outcome.to_body() == {"error": MISSING_PRIMARY_MESSAGE}

    @pytest.mark.unit
    def test_discovery_aggregation_stops_at_size(self):
        """Test discovery stops once the requested size is reached."""
        hunter = MagicMock()
        hunter.is_configured = True
        hunter.discover.return_value = [{"domain": f"c{i}.com"} for i in range(5)]
        hunter.domain_search.side_effect = lambda domain, limit: {
            "organization": domain,
            "emails": [{"value": f"p{i}@{domain}"} for i in range(5)],
        }
        llm = MagicMock()
        llm.is_configured = True
        llm.generate.return_value = "none"
        pipeline = make_pipeline(
            make_wiza(configured=False),
            fallback=HunterFallbackSearch(hunter, llm),
            settings=make_settings(HUNTER_API_KEY="h"),
        )

        outcome = pipeline.run(SearchRequest(prompt="R&D firms", size=10))

        assert len(outcome.table_spec.rows) == 10
        searched = [call[0][0] for call in hunter.domain_search.call_args_list]
        assert searched == ["c0.com", "c1.com"]


class TestPipelineConstruction:
    """Tests for default client wiring."""

    @pytest.mark.unit
    def test_fallback_built_only_with_hunter_key(self):
        settings = make_settings(WIZA_API_KEY="w", HUNTER_API_KEY="h")
        pipeline = LeadTablePipeline(settings=settings)

        assert isinstance(pipeline.fallback, HunterFallbackSearch)
        assert pipeline.fallback.hunter.api_key == "h"
        assert pipeline.wiza.api_key == "w"
        assert pipeline.polling_policy.max_attempts == 18

    @pytest.mark.unit
    def test_polling_policy_from_settings(self):
        settings = make_settings(WIZA_POLL_ATTEMPTS="3", WIZA_POLL_INTERVAL_SECONDS="0.5")
        pipeline = LeadTablePipeline(settings=settings)

        assert pipeline.polling_policy.max_attempts == 3
        assert pipeline.polling_policy.interval_seconds == 0.5


class TestPipelineOutcomeBody:
    """Tests for response body rendering."""

    @pytest.mark.unit
    def test_success_body(self):
        wiza = make_wiza(contacts=WIZA_CONTACTS)
        body = make_pipeline(wiza).run(SearchRequest(prompt="x")).to_body()

        assert set(body) == {"tableSpec", "provider", "jobMeta"}
        assert body["provider"] == "primary"
        assert body["jobMeta"]["listId"] == "4821"
        assert body["jobMeta"]["listStatus"] == "complete"
        assert len(body["jobMeta"]["filters"]) == 21

    @pytest.mark.unit
    def test_in_progress_body(self):
        wiza = make_wiza(statuses=["queued"])
        body = make_pipeline(wiza, attempts=2).run(SearchRequest(prompt="x")).to_body()

        assert body == {
            "tableSpec": {
                "title": "Wiza Contacts",
                "description": "Wiza is still building the list. Please retry shortly.",
                "columns": ["Status", "List ID"],
                "rows": [["queued", "4821"]],
            },
            "jobMeta": {"listId": "4821", "listStatus": "queued"},
        }

    @pytest.mark.unit
    def test_error_body(self):
        outcome = PipelineOutcome(status_code=500, error="boom", details={"a": 1})
        assert outcome.to_body() == {"error": "boom", "details": {"a": 1}}


class TestProspectSearch:
    """Tests for the synchronous prospect search."""

    @pytest.mark.unit
    def test_unconfigured(self):
        pipeline = make_pipeline(make_wiza(configured=False))
        status, body = pipeline.prospect_search(ProspectSearchRequest())

        assert status == 500
        assert body == {"error": "Server configuration error: Missing WIZA_API_KEY"}

    @pytest.mark.unit
    def test_filters_normalized_and_forwarded(self):
        wiza = make_wiza()
        wiza.prospect_search.return_value = {"total": 1, "profiles": [{"full_name": "Ada"}]}
        pipeline = make_pipeline(wiza)

        status, body = pipeline.prospect_search(
            ProspectSearchRequest(filters={"skill": ["go", 3], "location": "bad"}, size=50)
        )

        filters, size = wiza.prospect_search.call_args[0]
        assert filters.skill == ["go"]
        assert filters.location == {}
        assert size == 30
        assert status == 200
        assert body == {"total": 1, "profiles": [{"full_name": "Ada"}]}

    @pytest.mark.unit
    def test_provider_error_keeps_upstream_status(self):
        wiza = make_wiza()
        wiza.prospect_search.side_effect = WizaError(
            "Wiza request failed (422): bad filters", provider="wiza", upstream_status=422, body="bad filters"
        )
        status, body = make_pipeline(wiza).prospect_search(ProspectSearchRequest())

        assert status == 422
        assert body["error"] == "Wiza request failed (422): bad filters"

    @pytest.mark.unit
    def test_transport_error_is_502(self):
        wiza = make_wiza()
        wiza.prospect_search.side_effect = WizaError("Wiza request failed: refused", provider="wiza")
        status, _ = make_pipeline(wiza).prospect_search(ProspectSearchRequest())

        assert status == 502
