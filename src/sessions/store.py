"""Call session storage.

Callers depend on the abstract ``SessionStore``; ``InMemorySessionStore`` is the
single-process implementation. For multi-worker deployments, put Redis or
another shared store behind the same interface.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from dialogue.errors import CallBusyError
from dialogue.schemas import Speaker

LOGGER = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Turn:
    speaker: Speaker
    text: str


@dataclass
class CallSession:
    id: str
    created_at: datetime
    last_activity_at: datetime
    turns: list[Turn] = field(default_factory=list)
    ended: bool = False

    @property
    def turn_count(self) -> int:
        return len(self.turns)

    def snapshot(self) -> CallSession:
        """Copy whose turn list can be read without seeing later appends."""

        return CallSession(
            id=self.id,
            created_at=self.created_at,
            last_activity_at=self.last_activity_at,
            turns=list(self.turns),
            ended=self.ended,
        )


class SessionStore(ABC):
    """Exclusive owner of call session mutation."""

    @abstractmethod
    async def create(self, call_id: str) -> CallSession:
        """Return the open session for ``call_id``, creating an empty one if absent."""

    @abstractmethod
    async def get(self, call_id: str) -> CallSession | None:
        """Return the session or ``None``; ``None`` means "treat as fresh"."""

    @abstractmethod
    async def append_turn(self, call_id: str, speaker: Speaker, text: str) -> CallSession:
        """Append one turn and refresh the activity timestamp."""

    @abstractmethod
    async def touch(self, call_id: str) -> None:
        """Refresh the activity timestamp without recording a turn."""

    @abstractmethod
    async def delete(self, call_id: str) -> None:
        """Remove the session. Deleting an unknown id is a no-op."""

    @abstractmethod
    async def sweep(self, max_idle_seconds: float) -> int:
        """Evict idle sessions and return how many were removed."""

    @abstractmethod
    async def schedule_delete(self, call_id: str, delay: float) -> None:
        """Mark the session ended and delete it after ``delay`` seconds."""

    @abstractmethod
    def claim(self, call_id: str):
        """Async context manager holding per-call exclusivity.

        Raises ``CallBusyError`` if the call is already claimed.
        """

    async def close(self) -> None:
        """Release background resources."""


class InMemorySessionStore(SessionStore):
    """Process-local store keyed by call id.

    Dict mutations happen without awaiting, so each operation is atomic on the
    event loop. Per-call exclusivity is tracked separately so unrelated calls
    never wait on each other.
    """

    def __init__(
        self,
        *,
        max_sessions: int = 1000,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessions: dict[str, CallSession] = {}
        self._claimed: set[str] = set()
        self._pending_deletes: dict[str, asyncio.Task] = {}
        self._max_sessions = max_sessions
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def is_claimed(self, call_id: str) -> bool:
        return call_id in self._claimed

    async def create(self, call_id: str) -> CallSession:
        session = self._sessions.get(call_id)
        if session is None:
            now = self._clock()
            session = CallSession(id=call_id, created_at=now, last_activity_at=now)
            self._sessions[call_id] = session
            LOGGER.info("Session created call_id=%s open_sessions=%d", call_id, len(self._sessions))
        return session

    async def get(self, call_id: str) -> CallSession | None:
        return self._sessions.get(call_id)

    async def append_turn(self, call_id: str, speaker: Speaker, text: str) -> CallSession:
        session = self._sessions.get(call_id)
        if session is None:
            raise KeyError(call_id)
        session.turns.append(Turn(speaker=speaker, text=text))
        session.last_activity_at = self._clock()
        return session

    async def touch(self, call_id: str) -> None:
        session = self._sessions.get(call_id)
        if session is not None:
            session.last_activity_at = self._clock()

    async def delete(self, call_id: str) -> None:
        pending = self._pending_deletes.pop(call_id, None)
        if pending is not None and pending is not asyncio.current_task():
            pending.cancel()
        if self._sessions.pop(call_id, None) is not None:
            LOGGER.info("Session deleted call_id=%s open_sessions=%d", call_id, len(self._sessions))

    async def sweep(self, max_idle_seconds: float) -> int:
        cutoff = self._clock() - timedelta(seconds=max_idle_seconds)
        idle = [
            call_id
            for call_id, session in self._sessions.items()
            if session.last_activity_at < cutoff and call_id not in self._claimed
        ]
        for call_id in idle:
            await self.delete(call_id)
        removed = len(idle)

        if len(self._sessions) > self._max_sessions:
            overflow = [call_id for call_id in self._sessions if call_id not in self._claimed]
            LOGGER.warning(
                "Session store over ceiling (%d > %d); clearing %d unclaimed sessions",
                len(self._sessions),
                self._max_sessions,
                len(overflow),
            )
            for call_id in overflow:
                await self.delete(call_id)
            removed += len(overflow)
        return removed

    async def schedule_delete(self, call_id: str, delay: float) -> None:
        session = self._sessions.get(call_id)
        if session is None:
            return
        session.ended = True
        previous = self._pending_deletes.pop(call_id, None)
        if previous is not None:
            previous.cancel()
        self._pending_deletes[call_id] = asyncio.create_task(self._delete_later(call_id, session, delay))

    async def _delete_later(self, call_id: str, session: CallSession, delay: float) -> None:
        await asyncio.sleep(delay)
        # Only remove the conversation this timer was armed for.
        if self._sessions.get(call_id) is session:
            await self.delete(call_id)
        else:
            self._pending_deletes.pop(call_id, None)

    @asynccontextmanager
    async def claim(self, call_id: str) -> AsyncIterator[None]:
        if call_id in self._claimed:
            raise CallBusyError(call_id)
        self._claimed.add(call_id)
        try:
            yield
        finally:
            self._claimed.discard(call_id)

    async def close(self) -> None:
        pending = list(self._pending_deletes.values())
        self._pending_deletes.clear()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
