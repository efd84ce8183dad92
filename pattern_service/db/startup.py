"""
Startup database initialization with bounded retry.

initialize_database() is scheduled as a background task when the app starts, so
the HTTP server is already answering /api/health while the database comes up.
Each attempt builds a fresh engine, checks out one connection, ensures the
schema and releases the connection. Retries are driven by tenacity: attempt n
failing waits n * DB_INIT_BACKOFF_MS before attempt n + 1. After
DB_INIT_MAX_ATTEMPTS failures the state is marked degraded and the last error
is re-raised to the caller.
"""

import asyncio
from typing import Awaitable, Callable

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..core.config import Settings
from ..core.logger import get_logger
from ..core.state import DatabaseState
from .connection import PoolConfig, build_pool_config, create_pool, redact_url
from .schema import ensure_schema

logger = get_logger(__name__)

PoolFactory = Callable[[PoolConfig], Engine]
Sleeper = Callable[[float], Awaitable[None]]


def _prepare(engine: Engine) -> None:
    # Blocking: runs in the threadpool
    with engine.begin() as conn:
        ensure_schema(conn)


async def _open_engine(settings: Settings, pool_factory: PoolFactory) -> Engine:
    """One attempt: build the pool and ensure the schema through one connection."""
    engine = pool_factory(build_pool_config(settings.DATABASE_URL, settings))
    try:
        await run_in_threadpool(_prepare, engine)
    except BaseException:
        # Also on cancellation at shutdown: the engine never reaches the state
        engine.dispose()
        raise
    return engine


def _log_failed_attempt(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        "Database connection attempt %d failed: %s",
        retry_state.attempt_number,
        exc,
        extra={"attempt": retry_state.attempt_number, "error": str(exc)},
    )


def _log_retry(retry_state: RetryCallState) -> None:
    logger.info(
        "Retrying database connection",
        extra={
            "delay_ms": int(retry_state.next_action.sleep * 1000),
            "next_attempt": retry_state.attempt_number + 1,
        },
    )


def retry_policy(settings: Settings, sleep: Sleeper = asyncio.sleep) -> AsyncRetrying:
    """Attempts and linear backoff (step, 2*step, ...) for the startup connection."""
    step = settings.DB_INIT_BACKOFF_MS / 1000
    return AsyncRetrying(
        stop=stop_after_attempt(settings.DB_INIT_MAX_ATTEMPTS),
        wait=wait_incrementing(start=step, increment=step),
        retry=retry_if_exception_type(Exception),
        sleep=sleep,
        after=_log_failed_attempt,
        before_sleep=_log_retry,
        reraise=True,
    )


# PUBLIC_INTERFACE
async def initialize_database(
    state: DatabaseState,
    settings: Settings,
    pool_factory: PoolFactory = create_pool,
    sleep: Sleeper = asyncio.sleep,
) -> Engine:
    """Connect, ensure the schema and install the engine into `state`.

    Args:
        state: readiness state that receives the engine on success.
        settings: source of DATABASE_URL and the retry/timeouts configuration.
        pool_factory: builds an engine from a PoolConfig (create_pool by default).
        sleep: awaitable used for backoff waits, in seconds.

    Returns:
        The ready engine.

    Raises:
        The error of the final attempt once all attempts are exhausted.
    """
    try:
        async for attempt in retry_policy(settings, sleep):
            with attempt:
                state.mark_attempting(attempt.retry_state.attempt_number)
                engine = await _open_engine(settings, pool_factory)
    except Exception as exc:
        state.mark_degraded(exc)
        raise

    state.mark_ready(engine)
    logger.info(
        "Database initialized successfully",
        extra={"attempt": state.attempts, "url_redacted": redact_url(settings.DATABASE_URL)},
    )
    return engine
