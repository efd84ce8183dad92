from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Engine

from ..api.deps import require_engine
from ..core.logger import get_logger
from ..db.schema import patterns
from ..models.schemas import ErrorResponse, PatternIn, PatternOut, SuccessResponse

router = APIRouter(prefix="/api/patterns", tags=["Patterns"])

logger = get_logger(__name__)

_unavailable = {503: {"model": ErrorResponse, "description": "Database unavailable"}}


def _row_to_pattern(row) -> PatternOut:
    return PatternOut(id=row.id, params=row.params, timestamp=row.timestamp)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[PatternOut],
    summary="List patterns",
    description="Returns every stored pattern, newest timestamp first.",
    responses={500: {"model": ErrorResponse}, **_unavailable},
)
def list_patterns(engine: Engine = Depends(require_engine)) -> List[PatternOut]:
    stmt = select(patterns.c.id, patterns.c.params, patterns.c.timestamp).order_by(
        patterns.c.timestamp.desc()
    )
    try:
        with engine.connect() as conn:
            rows = conn.execute(stmt).all()
    except Exception as exc:
        logger.error("Error fetching patterns", exc_info=exc)
        raise HTTPException(status_code=500, detail="Failed to fetch patterns")
    return [_row_to_pattern(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=PatternOut,
    summary="Save pattern",
    description="Stores a pattern. The id is generated by the server.",
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, **_unavailable},
)
def create_pattern(
    payload: Optional[PatternIn] = Body(default=None),
    engine: Engine = Depends(require_engine),
) -> PatternOut:
    if payload is None or payload.params is None or payload.timestamp is None:
        raise HTTPException(status_code=400, detail="Missing params or timestamp")

    stmt = (
        insert(patterns)
        .values(id=str(uuid4()), params=payload.params, timestamp=payload.timestamp)
        .returning(patterns.c.id, patterns.c.params, patterns.c.timestamp)
    )
    try:
        with engine.begin() as conn:
            row = conn.execute(stmt).one()
    except Exception as exc:
        logger.error("Error saving pattern", exc_info=exc)
        raise HTTPException(status_code=500, detail="Failed to save pattern")
    return _row_to_pattern(row)


# PUBLIC_INTERFACE
@router.delete(
    "/{pattern_id}",
    response_model=SuccessResponse,
    summary="Delete pattern",
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, **_unavailable},
)
def delete_pattern(pattern_id: str, engine: Engine = Depends(require_engine)) -> SuccessResponse:
    try:
        with engine.begin() as conn:
            result = conn.execute(delete(patterns).where(patterns.c.id == pattern_id))
    except Exception as exc:
        logger.error("Error deleting pattern", exc_info=exc, extra={"pattern_id": pattern_id})
        raise HTTPException(status_code=500, detail="Failed to delete pattern")
    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail="Pattern not found")
    return SuccessResponse(success=True)


# PUBLIC_INTERFACE
@router.delete(
    "",
    response_model=SuccessResponse,
    summary="Clear all patterns",
    responses={500: {"model": ErrorResponse}, **_unavailable},
)
def clear_patterns(engine: Engine = Depends(require_engine)) -> SuccessResponse:
    try:
        with engine.begin() as conn:
            result = conn.execute(delete(patterns))
    except Exception as exc:
        logger.error("Error clearing patterns", exc_info=exc)
        raise HTTPException(status_code=500, detail="Failed to clear patterns")
    logger.info("Patterns cleared", extra={"deleted": result.rowcount})
    return SuccessResponse(success=True)
