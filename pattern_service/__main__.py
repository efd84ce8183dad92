"""
Uvicorn launcher for the FastAPI app (`python -m pattern_service`).

Reads port from Settings (env/.env) and starts the server on 0.0.0.0, defaulting
to port 3000. The database is initialized in the background after the listener
is up, so /api/health answers immediately.
"""

import os

import uvicorn  # type: ignore

from .core.config import get_settings
from .core.logger import get_logger

logger = get_logger(__name__)


# PUBLIC_INTERFACE
def main() -> None:
    """Start the FastAPI application with uvicorn."""
    port = get_settings().PORT
    logger.info("Starting uvicorn server", extra={"port": port})
    uvicorn.run(
        "pattern_service.api.main:app",
        host="0.0.0.0",
        port=port,
        reload=bool(os.getenv("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
