"""
Connection factory for the patterns database.

Builds (but never opens) a SQLAlchemy engine for the configured DATABASE_URL:
- build_pool_config: pure translation of the URL and settings into a PoolConfig
- create_pool: PoolConfig -> Engine with driver-specific connect arguments

TLS policy: URLs pointing at the managed host (DB_SSL_HOST_MARKER) connect with
sslmode=require, which encrypts without verifying the server certificate.
Every other URL connects with sslmode=disable.

DB_IDLE_TIMEOUT_MS maps to pool_recycle, which closes connections older than
the limit when they are checked out. Idle connections are not reaped in the
background, so this approximates an idle timeout.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url

from ..core.config import Settings
from ..core.logger import get_logger

logger = get_logger(__name__)


class DatabaseConfigError(ValueError):
    """Raised when no usable connection string is configured."""


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PoolConfig:
    """Connection pool configuration derived from the connection string."""

    url: str
    ssl: bool
    connect_timeout_ms: int
    idle_timeout_ms: int
    echo: bool = False


def _ensure_psycopg2_scheme(url: str) -> str:
    """
    Ensure the SQLAlchemy URL uses the psycopg2 driver explicitly.
    Hosting providers commonly hand out 'postgres://' URLs, which SQLAlchemy rejects.
    """
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg2://" + url[len(prefix):]
    return url


# PUBLIC_INTERFACE
def redact_url(url: Optional[str]) -> str:
    """Return the URL with its password masked, suitable for logs."""
    if not url:
        return "<unconfigured>"
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return "<unparseable>"


# PUBLIC_INTERFACE
def build_pool_config(database_url: Optional[str], settings: Settings) -> PoolConfig:
    """Translate a connection string into a PoolConfig without connecting.

    Raises:
        DatabaseConfigError: if the connection string is missing or blank.
    """
    raw = (database_url or "").strip()
    if not raw:
        raise DatabaseConfigError("DATABASE_URL is not configured")
    marker = (settings.DB_SSL_HOST_MARKER or "").strip()
    return PoolConfig(
        url=_ensure_psycopg2_scheme(raw),
        ssl=bool(marker) and marker in raw,
        connect_timeout_ms=settings.DB_CONNECT_TIMEOUT_MS,
        idle_timeout_ms=settings.DB_IDLE_TIMEOUT_MS,
        echo=bool(settings.DB_ECHO),
    )


def engine_kwargs(config: PoolConfig) -> Dict[str, Any]:
    """Keyword arguments for create_engine, specialised per dialect."""
    backend = make_url(config.url).get_backend_name()
    kwargs: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": config.echo,
    }
    if backend == "postgresql":
        kwargs["connect_args"] = {
            # libpq only accepts whole seconds; never round down to 0 (= wait forever)
            "connect_timeout": max(1, config.connect_timeout_ms // 1000),
            "sslmode": "require" if config.ssl else "disable",
        }
        kwargs["pool_recycle"] = config.idle_timeout_ms / 1000
    elif backend == "sqlite":
        kwargs["connect_args"] = {
            "timeout": config.connect_timeout_ms / 1000,
            "check_same_thread": False,
        }
        kwargs["pool_recycle"] = config.idle_timeout_ms / 1000
    return kwargs


# PUBLIC_INTERFACE
def create_pool(config: PoolConfig) -> Engine:
    """Build the SQLAlchemy engine (connection pool). Does not connect."""
    engine = create_engine(config.url, **engine_kwargs(config))
    logger.info(
        "SQLAlchemy engine created.",
        extra={
            "url_redacted": redact_url(config.url),
            "ssl": config.ssl,
            "connect_timeout_ms": config.connect_timeout_ms,
            "idle_timeout_ms": config.idle_timeout_ms,
        },
    )
    return engine
