"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from config.settings import get_settings
from sessions.store import InMemorySessionStore, SessionStore

if TYPE_CHECKING:  # pragma: no cover
    from dialogue.turn_controller import TurnController


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    return InMemorySessionStore(max_sessions=get_settings().max_sessions)


@lru_cache(maxsize=1)
def _controller_factory() -> TurnController:
    # Lazy import so the app can start (and tests can override) without LLM credentials.
    from dialogue.reply_engine import ReplyEngine
    from dialogue.turn_controller import TurnController, TurnPolicy
    from llm.factory import build_llm_client
    from prompts.loader import load_prompt

    settings = get_settings()
    engine = ReplyEngine(
        build_llm_client(),
        system_prompt=load_prompt(settings.system_prompt_file),
        history_window=settings.history_window,
        temperature=settings.llm_temperature,
    )
    return TurnController(get_session_store(), engine, TurnPolicy.from_settings(settings))


def get_controller() -> TurnController:
    return _controller_factory()
