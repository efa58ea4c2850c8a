"""Per-call turn-taking state machine shared by every transport.

States are implicit in the session store:

- ``Idle``: no session for the call id.
- ``AwaitingUtterance``: session open, not claimed.
- ``Responding``: session claimed while a completion is in flight.
- ``Ended``: session marked ended (grace window) or removed.

Each inbound event produces exactly one ``Instruction``. Internal failures are
converted into a spoken apology that ends the call, never into silence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dialogue.errors import CallBusyError, ReplyGenerationFailure
from dialogue.reply_engine import ReplyEngine
from dialogue.schemas import EventKind, InboundEvent, Instruction
from sessions.store import SessionStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnPolicy:
    max_turns: int = 6
    termination_grace_seconds: float = 60.0
    greeting_text: str = "बोलिए..."
    reprompt_text: str = "क्षमा करें, मैं समझ नहीं पाया। कृपया दोबारा बोलें।"
    busy_text: str = "कृपया एक क्षण रुकिए, मैं अभी जवाब तैयार कर रहा हूँ।"
    apology_text: str = "क्षमा करें, त्रुटि हुई।"
    closing_text: str = "बात करने के लिए धन्यवाद। नमस्ते!"

    @classmethod
    def from_settings(cls, settings) -> TurnPolicy:
        return cls(
            max_turns=settings.max_turns,
            termination_grace_seconds=settings.termination_grace_seconds,
            greeting_text=settings.greeting_text,
            reprompt_text=settings.reprompt_text,
            busy_text=settings.busy_text,
            apology_text=settings.apology_text,
            closing_text=settings.closing_text,
        )


class TurnController:
    """Decides, per inbound event, whether to greet, reprompt, reply or hang up."""

    def __init__(self, store: SessionStore, engine: ReplyEngine, policy: TurnPolicy | None = None) -> None:
        self._store = store
        self._engine = engine
        self._policy = policy or TurnPolicy()

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def policy(self) -> TurnPolicy:
        return self._policy

    async def handle_event(self, event: InboundEvent) -> Instruction:
        try:
            if event.kind is EventKind.INITIAL:
                return await self._on_initial(event.call_id)
            return await self._on_utterance(event.call_id, event.utterance)
        except Exception as exc:
            LOGGER.exception("Turn handling failed for call_id=%s: %s", event.call_id, exc)
            await self._store.delete(event.call_id)
            return Instruction.speak(self._policy.apology_text, end=True)

    async def terminate(self, call_id: str) -> None:
        """Transport hung up or disconnected; keep the session for the grace window."""

        session = await self._store.get(call_id)
        if session is None:
            return
        LOGGER.info(
            "Call terminated call_id=%s turns=%d; deleting in %ss",
            call_id,
            session.turn_count,
            self._policy.termination_grace_seconds,
        )
        await self._store.schedule_delete(call_id, self._policy.termination_grace_seconds)

    async def _on_initial(self, call_id: str) -> Instruction:
        session = await self._store.get(call_id)
        if session is not None and session.ended:
            return self._closing()
        session = await self._store.create(call_id)
        await self._store.touch(call_id)
        LOGGER.info("Call started call_id=%s existing_turns=%d", call_id, session.turn_count)
        return Instruction.greet(self._policy.greeting_text)

    async def _on_utterance(self, call_id: str, utterance: str) -> Instruction:
        session = await self._store.get(call_id)
        if session is not None and session.ended:
            LOGGER.info("Late event for ended call_id=%s ignored", call_id)
            return self._closing()
        if session is None:
            # Providers may drop or resend state; an unknown id starts afresh.
            session = await self._store.create(call_id)
        await self._store.touch(call_id)

        if not utterance:
            LOGGER.info("Empty utterance call_id=%s; reprompting", call_id)
            return Instruction.reprompt(self._policy.reprompt_text)

        try:
            async with self._store.claim(call_id):
                return await self._respond(call_id, utterance)
        except CallBusyError:
            LOGGER.warning("Reply already in flight for call_id=%s; asking caller to wait", call_id)
            return Instruction.reprompt(self._policy.busy_text)

    async def _respond(self, call_id: str, utterance: str) -> Instruction:
        session = await self._store.get(call_id) or await self._store.create(call_id)

        if session.turn_count >= self._policy.max_turns:
            LOGGER.info("Turn budget reached call_id=%s turns=%d; closing", call_id, session.turn_count)
            await self._store.delete(call_id)
            return self._closing()

        LOGGER.info("Utterance received call_id=%s history=%d", call_id, session.turn_count)
        LOGGER.debug("Utterance text call_id=%s: %s", call_id, utterance)
        try:
            reply = await self._engine.generate_reply(session.snapshot(), utterance)
        except ReplyGenerationFailure as exc:
            LOGGER.error("Ending call_id=%s after reply failure: %s", call_id, exc.detail)
            await self._store.delete(call_id)
            return Instruction.speak(self._policy.apology_text, end=True)

        current = await self._store.get(call_id)
        if current is not session or current.ended:
            LOGGER.info("Discarding reply for call_id=%s; call ended while responding", call_id)
            return self._closing()

        await self._store.append_turn(call_id, "user", utterance)
        await self._store.append_turn(call_id, "assistant", reply)
        return Instruction.speak(reply)

    def _closing(self) -> Instruction:
        return Instruction.speak(self._policy.closing_text, end=True)
