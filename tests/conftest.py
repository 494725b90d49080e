"""
Shared fixtures.

Every test gets its own data directory (SQLite store, proposals.json,
agents.json) and an outbound HTTP transport that refuses connections unless
the test installs its own handler with ``mock_http``.
"""

from __future__ import annotations

import os
import sys
from typing import Callable

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from smart_proposal import config  # noqa: E402
from smart_proposal.database.connection import init_db  # noqa: E402
from smart_proposal.services import http  # noqa: E402
from smart_proposal.services.kanban import board  # noqa: E402


def _offline(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network disabled in tests", request=request)


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("SMART_PROPOSAL_DATA_DIR", str(tmp_path))
    monkeypatch.setattr(config, "SERPER_API_KEY", "test-serper-key")
    monkeypatch.setattr(config, "ZAI_API_KEY", "test-zai-key")
    monkeypatch.setattr(config, "APP_URL", "http://testserver")
    init_db()
    http.set_transport(httpx.MockTransport(_offline))
    board.reset()
    yield tmp_path
    http.set_transport(None)
    board.reset()


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], None]:
    """Install ``handler`` as the transport for every outbound client."""

    def install(handler):
        http.set_transport(httpx.MockTransport(handler))

    return install


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from smart_proposal.main import app

    return TestClient(app)


def completion(content: str, **message) -> dict:
    """Chat-completions body with a single assistant message."""
    return {"choices": [{"message": {"role": "assistant", "content": content, **message}}]}
