"""
Pytest configuration for the pattern service.

Provides fixtures for:
- Settings pointing at a throwaway file-backed SQLite database
- An engine built by the production connection factory, schema ensured
- A FastAPI TestClient whose database state is already ready
"""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from pattern_service.api.main import create_app
from pattern_service.core.config import Settings
from pattern_service.core.state import DatabaseState
from pattern_service.db.connection import build_pool_config, create_pool
from pattern_service.db.schema import ensure_schema


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'patterns.db'}",
        STATIC_DIR=str(tmp_path),
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def engine(test_settings: Settings) -> Generator[Engine, None, None]:
    eng = create_pool(build_pool_config(test_settings.DATABASE_URL, test_settings))
    with eng.begin() as conn:
        ensure_schema(conn)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def ready_state(engine: Engine) -> DatabaseState:
    state = DatabaseState()
    state.mark_attempting(1)
    state.mark_ready(engine)
    return state


@pytest.fixture
def client(test_settings: Settings, ready_state: DatabaseState) -> Generator[TestClient, None, None]:
    """TestClient for an app whose database is already initialized."""
    app = create_app(test_settings, state=ready_state)
    with TestClient(app) as c:
        yield c
