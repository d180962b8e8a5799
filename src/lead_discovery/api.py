"""FastAPI HTTP surface for the lead discovery pipeline.

Endpoints:
- POST /lead-table - Build a contact table from a free-text request
- POST /prospect-search - Synchronous prospect search with explicit filters
- GET /health - Health check endpoint

Environment Variables:
- WIZA_API_KEY: Primary prospect provider key
- HUNTER_API_KEY: Fallback contact provider key
- GEMINI_API_KEY (or API_KEY): AI model key for filter translation
- HOST / PORT: Bind address for ``lead-discovery-api`` (default: 0.0.0.0:8080)
- LOG_LEVEL: Logging level (default: INFO)

Example:
    uvicorn lead_discovery.api:app --host 0.0.0.0 --port 8080
"""

import os
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import config
from .errors import BadRequestError, LeadDiscoveryError
from .logging_utils import ContextAdapter, LogContext, get_logger, setup_logging
from .models import ProspectSearchRequest, SearchRequest
from .orchestrator import LeadTablePipeline, PipelineOutcome

SERVICE_NAME = "lead-discovery"
SERVICE_VERSION = "1.0.0"

logger = ContextAdapter(get_logger(__name__), {})

_pipeline: Optional[LeadTablePipeline] = None


def get_pipeline() -> LeadTablePipeline:
    """Dependency returning the shared pipeline, built on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = LeadTablePipeline()
    return _pipeline


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    setup_logging(level=config.LOG_LEVEL.upper(), structured=config.APP_ENV != "dev")
    logger.info("Lead discovery API starting...")
    if not config.has_wiza:
        logger.warning("WIZA_API_KEY not set - requests go straight to the fallback provider")
    if not config.has_hunter:
        logger.warning("HUNTER_API_KEY not set - fallback provider disabled")
    if not config.has_gemini:
        logger.warning("GEMINI_API_KEY not set - using heuristic filter translation")

    yield

    global _pipeline
    if _pipeline is not None:
        _pipeline.close()
        _pipeline = None
    logger.info("Lead discovery API shutdown complete")


app = FastAPI(
    title="Lead Discovery",
    description="Free-text lead requests to contact tables",
    version=SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    message = str(errors[0].get("msg", "Invalid request body"))
    return message.split(", ", 1)[1] if message.startswith("Value error, ") else message


def _error_response(error: LeadDiscoveryError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=PipelineOutcome.from_error(error).to_body(),
    )


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint.

    Returns:
        Health status including provider configuration state.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "wiza_configured": config.has_wiza,
        "hunter_configured": config.has_hunter,
        "gemini_configured": config.has_gemini,
    }


@app.post("/lead-table")
def create_lead_table(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    pipeline: LeadTablePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Build a contact table for a free-text request or resume a pending list."""
    try:
        search = SearchRequest.model_validate(payload or {})
    except ValidationError as e:
        raise BadRequestError(_validation_message(e)) from e

    with LogContext(request_id=uuid.uuid4().hex[:12]):
        logger.info(
            "Lead table request",
            extra={"size": search.size, "list_id": search.existing_job_id},
        )
        outcome = pipeline.run(search)
        logger.info("Lead table response", extra={"status_code": outcome.status_code})

    return JSONResponse(status_code=outcome.status_code, content=outcome.to_body())


@app.post("/prospect-search")
def prospect_search(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    pipeline: LeadTablePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Run a synchronous prospect search with caller-supplied filters."""
    try:
        search = ProspectSearchRequest.model_validate(payload or {})
    except ValidationError as e:
        raise BadRequestError(_validation_message(e)) from e

    with LogContext(request_id=uuid.uuid4().hex[:12]):
        status_code, body = pipeline.prospect_search(search)
        logger.info("Prospect search response", extra={"status_code": status_code})

    return JSONResponse(status_code=status_code, content=body)


# Error handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies answer 400 with a single error message."""
    logger.info(
        "Rejected malformed request",
        extra={"path": request.url.path, "errors": len(exc.errors())},
    )
    return _error_response(BadRequestError("Invalid request body"))


@app.exception_handler(LeadDiscoveryError)
async def lead_discovery_exception_handler(request: Request, exc: LeadDiscoveryError) -> JSONResponse:
    """Known pipeline errors answer with their own status code."""
    logger.info(
        "Request rejected",
        extra={"path": request.url.path, "error_kind": exc.kind.value},
    )
    return _error_response(exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors."""
    logger.error(
        "Unhandled error: %s %s - %s",
        request.method,
        request.url.path,
        str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to generate table"},
    )


def main() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    port = int(os.environ.get("PORT", 8080))
    host = os.environ.get("HOST", "0.0.0.0")

    logger.info("Starting lead discovery API on %s:%d", host, port)
    uvicorn.run(
        "lead_discovery.api:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
