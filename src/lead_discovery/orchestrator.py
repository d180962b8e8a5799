"""Lead table pipeline.

Drives one request through translation, the primary prospect list job and,
when the primary path comes up empty or errors, the fallback provider.

Each stage returns a ``StageResult``; what happens after a failed stage is
decided by ``should_fail_over`` rather than by the stage itself.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .config import LeadDiscoveryConfig, config as default_config
from .contacts import build_contact_table, build_status_table, normalize_contacts
from .errors import (
    ConfigurationError,
    ErrorKind,
    JobFailedError,
    LeadDiscoveryError,
    ProviderHTTPError,
    StageResult,
    should_fail_over,
)
from .filters import normalize_filters
from .llm_client import LLMClient
from .logging_utils import ContextAdapter, get_logger
from .models import (
    ErrorResponse,
    FilterSet,
    JobMeta,
    JobStatus,
    LeadTableResponse,
    Provider,
    ProspectSearchRequest,
    SearchRequest,
    TableSpec,
)
from .polling import PollingPolicy
from .providers.hunter import HunterClient, HunterFallbackSearch
from .providers.wiza import WizaClient
from .translator import QueryTranslator

LIST_NAME_PREFIX = "Researchr: "
PRIMARY_TITLE = "Wiza Contacts"
FALLBACK_TITLE = "Hunter Contacts"
MISSING_PRIMARY_MESSAGE = "Server configuration error: Missing WIZA_API_KEY and Hunter fallback failed"
MISSING_SEARCH_KEY_MESSAGE = "Server configuration error: Missing WIZA_API_KEY"


@dataclass
class PipelineOutcome:
    """Final HTTP-shaped result of a pipeline run."""

    status_code: int
    table_spec: Optional[TableSpec] = None
    provider: Optional[Provider] = None
    job_meta: Optional[JobMeta] = None
    error: Optional[str] = None
    details: Any = None

    @classmethod
    def from_error(cls, error: LeadDiscoveryError) -> "PipelineOutcome":
        return cls(status_code=error.status_code, error=error.message, details=error.details)

    def to_body(self) -> Dict[str, Any]:
        """Render the JSON response body."""
        if self.error is not None:
            return ErrorResponse(error=self.error, details=self.details).model_dump(exclude_none=True)
        return LeadTableResponse(
            table_spec=self.table_spec,
            provider=self.provider,
            job_meta=self.job_meta,
        ).model_dump(mode="json", by_alias=True, exclude_none=True)


class LeadTablePipeline:
    """Turns a SearchRequest into a contact table.

    Clients are injectable so tests can substitute fakes; by default they
    are built from ``settings``. The fallback is only built when a Hunter
    key is configured.
    """

    def __init__(
        self,
        settings: Optional[LeadDiscoveryConfig] = None,
        wiza_client: Optional[WizaClient] = None,
        fallback: Optional[HunterFallbackSearch] = None,
        translator: Optional[QueryTranslator] = None,
        polling_policy: Optional[PollingPolicy] = None,
    ):
        self.settings = settings or default_config
        self.logger = ContextAdapter(get_logger(__name__), {})

        llm_client = None
        if translator is None or (fallback is None and self.settings.has_hunter):
            llm_client = LLMClient(
                api_key=self.settings.GEMINI_API_KEY,
                models=self.settings.GEMINI_MODELS,
                base_url=self.settings.GEMINI_BASE_URL,
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            )

        self.wiza = wiza_client or WizaClient(
            api_key=self.settings.WIZA_API_KEY,
            base_url=self.settings.WIZA_BASE_URL,
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
        )
        if fallback is None and self.settings.has_hunter:
            fallback = HunterFallbackSearch(
                HunterClient(
                    api_key=self.settings.HUNTER_API_KEY,
                    base_url=self.settings.HUNTER_BASE_URL,
                    timeout=self.settings.HTTP_TIMEOUT_SECONDS,
                ),
                llm_client,
            )
        self.fallback = fallback
        self.translator = translator or QueryTranslator(llm_client)
        self.polling_policy = polling_policy or PollingPolicy(
            max_attempts=self.settings.WIZA_POLL_ATTEMPTS,
            interval_seconds=self.settings.WIZA_POLL_INTERVAL_SECONDS,
        )

    def run(self, request: SearchRequest) -> PipelineOutcome:
        """Run one lead table request to a final outcome."""
        if self.wiza.is_configured:
            primary = self._run_primary(request)
        else:
            primary = StageResult.failure(
                ErrorKind.CONFIGURATION,
                ConfigurationError(MISSING_PRIMARY_MESSAGE),
            )
        if primary.ok:
            return primary.value

        self.logger.info(
            "Primary provider stage failed",
            extra={"error_kind": primary.error_kind.value},
        )
        if should_fail_over(primary.error_kind, self.settings.FALLBACK_ON_JOB_FAILED):
            fallback = self._run_fallback(request)
            if fallback.ok:
                return fallback.value

        if primary.value is not None:
            return primary.value
        return PipelineOutcome.from_error(primary.error)

    def _run_primary(self, request: SearchRequest) -> StageResult[PipelineOutcome]:
        filters: Optional[FilterSet] = None
        try:
            if request.existing_job_id:
                self.logger.info(
                    "Resuming prospect list",
                    extra={"list_id": request.existing_job_id},
                )
                job = self.wiza.resume(request.existing_job_id)
            else:
                filters = self.translator.translate(request.prompt, request.user_location)
                job = self.wiza.create_job(LIST_NAME_PREFIX + request.prompt, filters, request.size)

            job = self.wiza.wait(job, self.polling_policy)

            if job.status is JobStatus.FAILED:
                return StageResult.failure(
                    ErrorKind.JOB_FAILED,
                    JobFailedError(
                        f"Wiza list failed ({job.provider_status or 'unknown'})",
                        details=job.payload,
                    ),
                )
            if job.status is JobStatus.TIMEOUT:
                status_table = build_status_table(job, title=PRIMARY_TITLE)
                return StageResult.success(PipelineOutcome(
                    status_code=202,
                    table_spec=status_table,
                    job_meta=JobMeta(list_id=job.id, list_status=status_table.rows[0][0]),
                ))

            raw_contacts = self.wiza.fetch_contacts(job.id)
        except ProviderHTTPError as e:
            self.logger.error(
                "Primary provider request failed",
                extra={"error": e.message, "upstream_status": e.upstream_status},
            )
            return StageResult.failure(ErrorKind.PROVIDER_HTTP, e)

        contacts = normalize_contacts(raw_contacts)
        subject = request.prompt or job.name or "contacts"
        outcome = PipelineOutcome(
            status_code=200,
            table_spec=build_contact_table(
                PRIMARY_TITLE,
                f"Contacts generated from Wiza for: {subject}",
                contacts,
            ),
            provider=Provider.PRIMARY,
            job_meta=JobMeta(
                total=len(contacts),
                returned=len(contacts),
                filters=filters.model_dump(mode="json") if filters is not None else None,
                list_id=job.id,
                list_status=job.provider_status,
            ),
        )
        if not contacts:
            self.logger.info("Prospect list returned no contacts", extra={"list_id": job.id})
            return StageResult.failure(ErrorKind.EMPTY_RESULT, value=outcome)
        return StageResult.success(outcome)

    def _run_fallback(self, request: SearchRequest) -> StageResult[PipelineOutcome]:
        if self.fallback is None or not request.prompt:
            return StageResult.failure(ErrorKind.EMPTY_RESULT)

        contacts = self.fallback.search(request.prompt, request.size)
        if not contacts:
            return StageResult.failure(ErrorKind.EMPTY_RESULT)

        self.logger.info("Fallback provider returned contacts", extra={"count": len(contacts)})
        return StageResult.success(PipelineOutcome(
            status_code=200,
            table_spec=build_contact_table(
                FALLBACK_TITLE,
                f"Contacts found via Hunter for: {request.prompt}",
                contacts,
            ),
            provider=Provider.FALLBACK,
        ))

    def prospect_search(self, request: ProspectSearchRequest) -> Tuple[int, Dict[str, Any]]:
        """Forward normalized filters to the synchronous prospect search.

        Returns:
            ``(status_code, body)``.
        """
        if not self.wiza.is_configured:
            error = ConfigurationError(MISSING_SEARCH_KEY_MESSAGE)
            return error.status_code, PipelineOutcome.from_error(error).to_body()

        try:
            result = self.wiza.prospect_search(normalize_filters(request.filters), request.size)
        except ProviderHTTPError as e:
            return e.upstream_status or e.status_code, PipelineOutcome.from_error(e).to_body()
        return 200, result

    def close(self) -> None:
        self.wiza.close()
        if self.fallback is not None:
            self.fallback.hunter.close()
