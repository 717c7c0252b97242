"""
Pytest fixtures for PoisonGuard tests. API tests use a fresh in-memory session.
"""

from __future__ import annotations

import os

import pytest

from backend_poisonguard.config.settings import EngineConfig


@pytest.fixture
def cfg() -> EngineConfig:
    """Default engine config snapshot."""
    return EngineConfig()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove POISONGUARD_* and analysis settings so tests see defaults."""
    for name in list(os.environ):
        if name.startswith("POISONGUARD_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("ANALYSIS_MAX_WORKERS", raising=False)
    monkeypatch.delenv("ANALYSIS_TIMEOUT_SEC", raising=False)
    return monkeypatch


@pytest.fixture
def client(clean_env):
    """FastAPI TestClient over a fresh session built from default config."""
    from fastapi.testclient import TestClient

    from backend_poisonguard.api_server import server

    server.reset_session_for_test()
    yield TestClient(server.app)
    server.reset_session_for_test()
