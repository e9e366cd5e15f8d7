"""
FastAPI application for the election portal.

Project: Election Portal
Description: Voter-facing ballot workflow, results tabulation and election
administration, backed by the remote election API
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ..ballot import BallotWorkflow, Notice, NoticeKind, WorkflowPhase
from ..results import tabulate_results
from ..shared import ElectionApiError
from .client import election_api
from .config import settings
from .models import (
    AdminActionResponse,
    AdminStatusResponse,
    BallotResponse,
    CandidateResponse,
    ErrorResponse,
    HealthResponse,
    PositionRequest,
    PositionResponse,
    ResultsResponse,
    ToggleRequest,
)
from .sessions import sessions

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
ballot_actions = Counter(
    "portal_ballot_actions_total",
    "Total number of ballot workflow actions",
    ["action"]
)
ballot_rejections = Counter(
    "portal_ballot_rejections_total",
    "Total number of ballot actions refused with a notice",
    ["kind"]
)
vote_submissions = Counter(
    "portal_vote_submissions_total",
    "Total number of ballot submissions by outcome",
    ["outcome"]
)
upstream_errors = Counter(
    "portal_upstream_errors_total",
    "Total number of failed election API calls",
    ["operation"]
)
request_duration = Histogram(
    "portal_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

PREFIX = settings.api_prefix


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    try:
        await election_api.initialize()
        logger.info(f"{settings.SERVICE_NAME} started successfully")
    except Exception as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    sessions.clear()
    await election_api.close()
    logger.info(f"{settings.SERVICE_NAME} shut down successfully")


# Create FastAPI app
app = FastAPI(
    title="Election Portal",
    description="Ballot workflow and results for the election API",
    version=settings.API_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    start = time.perf_counter()
    response = await call_next(request)

    route = request.scope.get("route")
    request_duration.labels(
        method=request.method,
        endpoint=getattr(route, "path", request.url.path),
        status=response.status_code
    ).observe(time.perf_counter() - start)

    return response


def bearer_token(request: Request) -> str:
    """Extract the caller's bearer token; every ballot and admin route needs one."""
    header = request.headers.get(settings.SESSION_HEADER, "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token"
        )
    return token.strip()


def upstream_failure(operation: str, error: ElectionApiError) -> HTTPException:
    """Translate an election API failure into the portal's HTTP error."""
    upstream_errors.labels(operation=operation).inc()
    logger.error(f"Election API error during {operation}: {error}")
    status_code = error.status_code if error.is_client_error else status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=status_code, detail=error.message)


def require_workflow(token: str) -> BallotWorkflow:
    workflow = sessions.get(token)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No ballot in progress. Load the ballot first."
        )
    return workflow


def record_action(action: str, notice: Optional[Notice]) -> None:
    ballot_actions.labels(action=action).inc()
    if notice is not None and notice.blocking:
        ballot_rejections.labels(kind=notice.kind.value).inc()


# ═══════════════════════════════════════════════════════════════════
# BALLOT WORKFLOW ENDPOINTS
# ═══════════════════════════════════════════════════════════════════

@app.post(
    f"{PREFIX}/ballot/load",
    response_model=BallotResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing bearer token"},
        429: {"description": "Rate limit exceeded"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def load_ballot(request: Request, token: str = Depends(bearer_token)) -> BallotResponse:
    """
    Start (or restart) the caller's ballot.

    Any ballot in progress is discarded. The response phase is `voting` or
    `review` when the ballot is ready, otherwise `closed`, `already_voted`
    or `load_failed` with the reason in `message`.
    """
    workflow = sessions.start(token, election_api.for_voter(token))
    try:
        await workflow.load()
    except Exception as e:
        sessions.discard(token)
        logger.error(f"Error loading ballot: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    ballot_actions.labels(action="load").inc()

    if workflow.phase == WorkflowPhase.LOAD_FAILED:
        upstream_errors.labels(operation="ballot_load").inc()

    return BallotResponse(**workflow.view())


@app.get(
    f"{PREFIX}/ballot",
    response_model=BallotResponse,
    responses={404: {"model": ErrorResponse, "description": "No ballot in progress"}}
)
async def get_ballot(token: str = Depends(bearer_token)) -> BallotResponse:
    """Current state of the caller's ballot."""
    return BallotResponse(**require_workflow(token).view())


@app.post(f"{PREFIX}/ballot/toggle", response_model=BallotResponse)
async def toggle_candidate(body: ToggleRequest, token: str = Depends(bearer_token)) -> BallotResponse:
    """
    Select or deselect a candidate on the current stage.

    - **candidateId**: Candidate to flip

    Refusals (limit reached, wrong position) come back as a notice.
    """
    workflow = require_workflow(token)
    record_action("toggle", workflow.toggle(body.candidate_id))
    return BallotResponse(**workflow.view())


@app.post(f"{PREFIX}/ballot/next", response_model=BallotResponse)
async def next_stage(token: str = Depends(bearer_token)) -> BallotResponse:
    """Advance to the next stage if the current position's minimum is met."""
    workflow = require_workflow(token)
    record_action("next", workflow.next())
    return BallotResponse(**workflow.view())


@app.post(f"{PREFIX}/ballot/previous", response_model=BallotResponse)
async def previous_stage(token: str = Depends(bearer_token)) -> BallotResponse:
    """Go back one stage."""
    workflow = require_workflow(token)
    record_action("previous", workflow.previous())
    return BallotResponse(**workflow.view())


@app.post(f"{PREFIX}/ballot/submit", response_model=BallotResponse)
@limiter.limit(settings.RATE_LIMIT)
async def submit_ballot(request: Request, token: str = Depends(bearer_token)) -> BallotResponse:
    """
    Submit the ballot from the review stage.

    Returns phase `submitted` with the confirmation in `message` when the
    election API accepts the ballot. Validation failures and rejections keep
    the ballot on review with the reason as a notice.
    """
    workflow = require_workflow(token)
    try:
        notice = await workflow.submit()
    except Exception as e:
        vote_submissions.labels(outcome="error").inc()
        logger.error(f"Error submitting ballot: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    record_action("submit", notice)

    if notice is not None:
        if notice.kind == NoticeKind.SUBMITTED:
            vote_submissions.labels(outcome="accepted").inc()
        elif notice.kind == NoticeKind.SUBMISSION_FAILED:
            vote_submissions.labels(outcome="rejected").inc()
        else:
            vote_submissions.labels(outcome="invalid").inc()

    return BallotResponse(**workflow.view())


# ═══════════════════════════════════════════════════════════════════
# RESULTS ENDPOINT
# ═══════════════════════════════════════════════════════════════════

@app.get(
    f"{PREFIX}/results",
    response_model=ResultsResponse,
    responses={502: {"model": ErrorResponse, "description": "Election API unavailable"}}
)
async def get_results(token: str = Depends(bearer_token)) -> ResultsResponse:
    """
    Tabulated election results.

    While voting is open only the pending notice is returned, never any
    per-candidate counts.
    """
    try:
        snapshot = await election_api.get_results(token)
        return ResultsResponse.from_view(tabulate_results(snapshot))

    except ElectionApiError as e:
        raise upstream_failure("results", e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error tabulating results: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


# ═══════════════════════════════════════════════════════════════════
# ADMIN ENDPOINTS
# ═══════════════════════════════════════════════════════════════════

async def _admin_action(operation: str, call, token: str, success_message: str) -> AdminActionResponse:
    try:
        data = await call(token)
    except ElectionApiError as e:
        raise upstream_failure(operation, e)

    logger.info(f"Admin action {operation} completed")
    message = data.get("message") if isinstance(data, dict) else None
    return AdminActionResponse(message=message or success_message)


@app.post(f"{PREFIX}/admin/voting/open", response_model=AdminActionResponse)
async def open_voting(token: str = Depends(bearer_token)) -> AdminActionResponse:
    """Open the voting period."""
    return await _admin_action("open_voting", election_api.open_voting, token, "Voting opened successfully.")


@app.post(f"{PREFIX}/admin/voting/close", response_model=AdminActionResponse)
async def close_voting(token: str = Depends(bearer_token)) -> AdminActionResponse:
    """Close the voting period."""
    return await _admin_action("close_voting", election_api.close_voting, token, "Voting closed successfully.")


@app.post(f"{PREFIX}/admin/registration/enable", response_model=AdminActionResponse)
async def enable_registration(token: str = Depends(bearer_token)) -> AdminActionResponse:
    return await _admin_action(
        "enable_registration", election_api.enable_registration, token,
        "User registration enabled successfully."
    )


@app.post(f"{PREFIX}/admin/registration/disable", response_model=AdminActionResponse)
async def disable_registration(token: str = Depends(bearer_token)) -> AdminActionResponse:
    return await _admin_action(
        "disable_registration", election_api.disable_registration, token,
        "User registration disabled successfully."
    )


@app.post(f"{PREFIX}/admin/clear-database", response_model=AdminActionResponse)
async def clear_database(token: str = Depends(bearer_token)) -> AdminActionResponse:
    """Clear all election data upstream and drop every ballot in progress."""
    response = await _admin_action(
        "clear_database", election_api.clear_election_data, token,
        "Election data cleared successfully."
    )
    sessions.clear()
    return response


@app.get(f"{PREFIX}/admin/status", response_model=AdminStatusResponse)
async def admin_status(token: str = Depends(bearer_token)) -> AdminStatusResponse:
    """Voting and registration status."""
    try:
        voting = await election_api.get_voting_status(token)
        registration = await election_api.get_registration_status(token)
    except ElectionApiError as e:
        raise upstream_failure("admin_status", e)

    return AdminStatusResponse(voting=voting, registration=registration)


@app.post(
    f"{PREFIX}/admin/positions",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse, "description": "Invalid position settings"}}
)
async def create_position(body: PositionRequest, token: str = Depends(bearer_token)):
    """
    Create a position.

    Selection bounds are checked here before anything is sent upstream.
    """
    position = body.to_position()
    is_valid, error = position.validate()
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    try:
        return await election_api.create_position(token, position)
    except ElectionApiError as e:
        raise upstream_failure("create_position", e)


@app.put(
    f"{PREFIX}/admin/positions/{{position_id}}",
    responses={400: {"model": ErrorResponse, "description": "Invalid position settings"}}
)
async def update_position(position_id: str, body: PositionRequest, token: str = Depends(bearer_token)):
    """Update a position."""
    position = body.to_position(position_id)
    is_valid, error = position.validate()
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error)

    try:
        return await election_api.update_position(token, position_id, position)
    except ElectionApiError as e:
        raise upstream_failure("update_position", e)


@app.delete(f"{PREFIX}/admin/positions/{{position_id}}", response_model=AdminActionResponse)
async def delete_position(position_id: str, token: str = Depends(bearer_token)) -> AdminActionResponse:
    try:
        await election_api.delete_position(token, position_id)
    except ElectionApiError as e:
        raise upstream_failure("delete_position", e)
    return AdminActionResponse(message="Position deleted successfully.")


@app.get(f"{PREFIX}/admin/positions", response_model=list[PositionResponse])
async def list_positions(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    token: str = Depends(bearer_token)
) -> list[PositionResponse]:
    """
    All positions in voting order, active and inactive unless `status` is given.
    """
    try:
        positions = await election_api.get_positions(token, status=status_filter, sort_by="order")
    except ElectionApiError as e:
        raise upstream_failure("list_positions", e)
    return [PositionResponse.from_position(p) for p in positions]


@app.get(f"{PREFIX}/admin/candidates", response_model=list[CandidateResponse])
async def list_candidates(
    search: Optional[str] = None,
    position: Optional[str] = None,
    token: str = Depends(bearer_token)
) -> list[CandidateResponse]:
    """
    Candidates, optionally narrowed by name `search` or by `position` id.
    """
    try:
        candidates = await election_api.get_candidates(token, position=position, search=search)
    except ElectionApiError as e:
        raise upstream_failure("list_candidates", e)
    return [CandidateResponse.from_candidate(c) for c in candidates]


@app.get(
    f"{PREFIX}/admin/candidates/{{candidate_id}}",
    response_model=CandidateResponse,
    responses={404: {"model": ErrorResponse, "description": "Candidate not found"}}
)
async def get_candidate(candidate_id: str, token: str = Depends(bearer_token)) -> CandidateResponse:
    try:
        candidate = await election_api.get_candidate(token, candidate_id)
    except ElectionApiError as e:
        raise upstream_failure("get_candidate", e)
    return CandidateResponse.from_candidate(candidate)


@app.delete(f"{PREFIX}/admin/candidates/{{candidate_id}}", response_model=AdminActionResponse)
async def delete_candidate(candidate_id: str, token: str = Depends(bearer_token)) -> AdminActionResponse:
    try:
        await election_api.delete_candidate(token, candidate_id)
    except ElectionApiError as e:
        raise upstream_failure("delete_candidate", e)
    return AdminActionResponse(message="Candidate deleted successfully.")


# ═══════════════════════════════════════════════════════════════════
# SERVICE ENDPOINTS
# ═══════════════════════════════════════════════════════════════════

@app.get(
    f"{PREFIX}/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse, "description": "Service unhealthy"}}
)
async def health_check():
    """
    Check health of the portal and the election API behind it.

    Returns overall health status and individual service statuses.
    """
    services = {}

    try:
        api_healthy = await election_api.check_health()
        services["election_api"] = "connected" if api_healthy else "disconnected"
    except Exception as e:
        logger.error(f"Election API health check error: {e}")
        services["election_api"] = "error"

    services["ballot_sessions"] = len(sessions)

    all_healthy = services["election_api"] == "connected"
    response = HealthResponse(
        status="healthy" if all_healthy else "unhealthy",
        services=services,
        timestamp=datetime.now(timezone.utc)
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "load_ballot": f"{PREFIX}/ballot/load",
            "ballot": f"{PREFIX}/ballot",
            "toggle": f"{PREFIX}/ballot/toggle",
            "next": f"{PREFIX}/ballot/next",
            "previous": f"{PREFIX}/ballot/previous",
            "submit": f"{PREFIX}/ballot/submit",
            "results": f"{PREFIX}/results",
            "health": f"{PREFIX}/health",
            "metrics": "/metrics"
        }
    }


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "election_portal.portal.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
