from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from fakes import SYSTEM_PROMPT, FakeLLM  # noqa: E402


@pytest.fixture()
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture()
def store():
    from sessions.store import InMemorySessionStore

    return InMemorySessionStore(max_sessions=100)


@pytest.fixture()
def controller(store, fake_llm):
    from dialogue.reply_engine import ReplyEngine
    from dialogue.turn_controller import TurnController, TurnPolicy

    engine = ReplyEngine(fake_llm, system_prompt=SYSTEM_PROMPT, history_window=5)
    return TurnController(store, engine, TurnPolicy())


@pytest.fixture()
def settings_env(monkeypatch: pytest.MonkeyPatch):
    """Set environment variables and rebuild the cached settings."""

    from config.settings import get_settings

    def _apply(**values: str) -> None:
        for key, value in values.items():
            monkeypatch.setenv(key.upper(), value)
        get_settings.cache_clear()

    get_settings.cache_clear()
    yield _apply
    monkeypatch.undo()
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def app():
    # Must be set before importing modules that read settings at import time.
    os.environ.setdefault("LLM_API_KEY", "test-key")
    os.environ.pop("PUBLIC_BASE_URL", None)
    os.environ.pop("ORIGINATION_API_KEY", None)

    import importlib

    from config.settings import get_settings

    get_settings.cache_clear()
    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app, controller):
    # Override the controller so tests never build a real LLM client.
    import api.dependencies as deps

    app.dependency_overrides[deps.get_controller] = lambda: controller

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
