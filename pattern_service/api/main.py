import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.config import Settings, get_settings
from ..core.logger import get_logger
from ..core.state import AppStatus, DatabaseState
from ..db.connection import create_pool
from ..db.startup import PoolFactory, Sleeper, initialize_database
from ..routers.health import router as health_router
from ..routers.patterns import router as patterns_router
from ..routers.static import router as static_router
from .middleware import BodySizeLimitMiddleware

logger = get_logger(__name__)


async def _bootstrap_database(
    state: DatabaseState, settings: Settings, pool_factory: PoolFactory, sleep: Sleeper
) -> None:
    """Run the initializer; failures leave the app serving in degraded mode."""
    try:
        await initialize_database(state, settings, pool_factory=pool_factory, sleep=sleep)
    except Exception as exc:
        logger.error(
            "Failed to initialize database after retries; database features will be unavailable",
            exc_info=exc,
            extra={"attempts": state.attempts},
        )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    return ORJSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    logger.info("Rejected request body", extra={"path": request.url.path, "errors": exc.errors()})
    return ORJSONResponse({"error": "Invalid request body"}, status_code=400)


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    state: Optional[DatabaseState] = None,
    pool_factory: PoolFactory = create_pool,
    sleep: Sleeper = asyncio.sleep,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: configuration; defaults to the cached environment settings.
        state: database readiness state. A state that is already ready or degraded
            is used as-is and the startup initializer is not scheduled.
        pool_factory: engine builder handed to the startup initializer.
        sleep: backoff sleeper handed to the startup initializer.
    """
    if settings is None:
        settings = get_settings()
    if state is None:
        state = DatabaseState()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Schedule database initialization on startup without blocking the listener;
        on shutdown cancel a still-running initializer and release pooled connections.
        """
        if state.status is AppStatus.STARTING:
            app.state.init_task = asyncio.create_task(_bootstrap_database(state, settings, pool_factory, sleep))
            logger.info("Startup complete; database initialization scheduled.", extra={"port": settings.PORT})
        else:
            logger.info("Startup complete (database state preset).", extra={"database": state.status.value})
        yield
        task = app.state.init_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        state.dispose()
        logger.info("Shutdown complete.")

    app = FastAPI(
        lifespan=lifespan,
        title=settings.APP_NAME,
        description="CRUD API over stored generator patterns (PostgreSQL via SQLAlchemy).",
        version="1.0.0",
        # ORJSONResponse is deprecated in recent FastAPI releases; fastapi is capped below 1.0 in pyproject.toml
        default_response_class=ORJSONResponse,
        openapi_tags=[
            {"name": "Health", "description": "Service health and database readiness"},
            {"name": "Patterns", "description": "Create, list and delete patterns"},
        ],
    )
    app.state.settings = settings
    app.state.database = state
    app.state.init_task = None

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.MAX_BODY_BYTES)
    origins = settings.cors_origins_list()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(health_router)
    app.include_router(patterns_router)
    app.include_router(static_router)

    logger.info("FastAPI app initialized", extra={"app_name": settings.APP_NAME, "env": settings.APP_ENV})
    return app


app = create_app()


if __name__ == "__main__":
    # Allow running as: python -m pattern_service.api.main
    import uvicorn  # type: ignore

    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT, log_level="info")
