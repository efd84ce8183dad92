"""
Database readiness state shared by the startup initializer and the routers.

The state object is created once per application (see api/main.py) and owns
the SQLAlchemy engine after a successful startup. Handlers read it through
request.app.state instead of a module-level global.
"""

import enum
from typing import Optional

from sqlalchemy.engine import Engine


# PUBLIC_INTERFACE
class AppStatus(str, enum.Enum):
    """Lifecycle of the database connection: starting -> ready | degraded."""

    STARTING = "starting"
    READY = "ready"
    DEGRADED = "degraded"


# PUBLIC_INTERFACE
class DatabaseState:
    """Holds the pool handle and the outcome of the startup initializer."""

    def __init__(self) -> None:
        self.status: AppStatus = AppStatus.STARTING
        self.engine: Optional[Engine] = None
        self.attempts: int = 0
        self.last_error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.status is AppStatus.READY and self.engine is not None

    def mark_attempting(self, attempt: int) -> None:
        self.attempts = attempt

    def mark_ready(self, engine: Engine) -> None:
        """Install the engine. It stays fixed for the lifetime of the process."""
        if self.engine is not None:
            raise RuntimeError("Database engine is already installed")
        self.engine = engine
        self.status = AppStatus.READY
        self.last_error = None

    def mark_degraded(self, error: BaseException) -> None:
        self.status = AppStatus.DEGRADED
        self.last_error = str(error)

    def dispose(self) -> None:
        """Release pooled connections on shutdown."""
        if self.engine is not None:
            self.engine.dispose()
