import time

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from ..api.deps import DATABASE_UNAVAILABLE, get_database_state
from ..core.logger import get_logger
from ..core.state import DatabaseState
from ..models.schemas import DBHealthResponse, ErrorResponse, HealthResponse

router = APIRouter(prefix="/api/health", tags=["Health"])

_logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=HealthResponse,
    summary="Service health",
    description=(
        "Liveness endpoint. Always returns 200 while the process is up and reports the "
        "database state (starting, ready, degraded). No database calls are made here."
    ),
    responses={200: {"description": "Service is healthy"}},
)
def get_health(state: DatabaseState = Depends(get_database_state)) -> HealthResponse:
    """Root health indicator used for liveness. Safe when the database is unreachable."""
    return HealthResponse(status="ok", timestamp=_now_ms(), database=state.status.value)


# PUBLIC_INTERFACE
@router.get(
    "/db",
    response_model=DBHealthResponse,
    summary="Database connectivity",
    description="Runs a simple SELECT 1 through the pool to confirm DB connectivity.",
    responses={
        200: {"description": "Database reachable"},
        503: {"model": ErrorResponse, "description": "Database unavailable"},
    },
)
def health_db(state: DatabaseState = Depends(get_database_state)) -> DBHealthResponse:
    """
    Database connectivity health check.

    Returns 200 with {"status":"ok"} when a trivial query succeeds, 503 when the
    database is not initialized or the query fails. Error details are only logged.
    """
    if not state.is_ready:
        raise HTTPException(status_code=503, detail=DATABASE_UNAVAILABLE)
    try:
        with state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        _logger.error("DB connectivity failed", exc_info=exc)
        raise HTTPException(status_code=503, detail=DATABASE_UNAVAILABLE)
    return DBHealthResponse(status="ok")
