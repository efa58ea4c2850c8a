"""Single-shot reply generation over a bounded conversation window."""

from __future__ import annotations

import logging
import time

from dialogue.errors import ReplyGenerationFailure
from llm.base import BaseLLMClient
from sessions.store import CallSession

LOGGER = logging.getLogger(__name__)


class ReplyEngine:
    """Turns a session's recent history plus a new utterance into one reply.

    The engine never mutates the session and never retries: one utterance, one
    completion call. Appending the turns is the caller's job.
    """

    def __init__(
        self,
        llm: BaseLLMClient,
        *,
        system_prompt: str,
        history_window: int = 5,
        temperature: float = 0.2,
    ) -> None:
        if history_window < 1:
            raise ValueError("history_window must be at least 1.")
        self._llm = llm
        self._system_prompt = system_prompt.strip()
        self._history_window = history_window
        self._temperature = temperature

    @property
    def history_window(self) -> int:
        return self._history_window

    def build_messages(self, session: CallSession, utterance: str) -> list[dict[str, str]]:
        history = [{"role": turn.speaker, "content": turn.text} for turn in session.turns]
        history.append({"role": "user", "content": utterance})
        return [{"role": "system", "content": self._system_prompt}, *history[-self._history_window :]]

    async def generate_reply(self, session: CallSession, utterance: str) -> str:
        utterance = utterance.strip()
        if not utterance:
            raise ValueError("Utterance may not be empty.")

        messages = self.build_messages(session, utterance)
        started = time.perf_counter()
        try:
            raw = await self._llm.chat(messages, temperature=self._temperature)
        except Exception as exc:
            LOGGER.error("Completion call failed for call_id=%s: %r", session.id, exc)
            raise ReplyGenerationFailure(f"Completion call failed: {exc}", cause=exc) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        if not isinstance(raw, str) or not raw.strip():
            raise ReplyGenerationFailure("Completion returned an empty reply.")

        reply = raw.strip()
        LOGGER.info(
            "Reply generated call_id=%s window=%d latency_ms=%.0f",
            session.id,
            len(messages) - 1,
            elapsed_ms,
        )
        LOGGER.debug("Reply text call_id=%s: %s", session.id, reply)
        return reply
