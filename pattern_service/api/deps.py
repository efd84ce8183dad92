from fastapi import HTTPException, Request
from sqlalchemy.engine import Engine

from ..core.config import Settings
from ..core.state import DatabaseState

DATABASE_UNAVAILABLE = "Database unavailable"


# PUBLIC_INTERFACE
def get_app_settings(request: Request) -> Settings:
    """Return the Settings the running application was created with."""
    return request.app.state.settings


# PUBLIC_INTERFACE
def get_database_state(request: Request) -> DatabaseState:
    """Return the DatabaseState attached to the running application."""
    return request.app.state.database


# PUBLIC_INTERFACE
def require_engine(request: Request) -> Engine:
    """FastAPI dependency yielding the ready engine, or 503 while the database is not ready."""
    state = get_database_state(request)
    if not state.is_ready:
        raise HTTPException(status_code=503, detail=DATABASE_UNAVAILABLE)
    return state.engine
