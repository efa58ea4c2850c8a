"""Bidirectional streaming transport.

One WebSocket per call. Binary frames are raw audio and only buffered. Text
frames are JSON events; ``{"type": "utterance", "text": ...}`` drives a turn and
the answer comes back as ``{"type": "say", "text": ...}``, followed by
``{"type": "hangup"}`` when the call should end.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from api.dependencies import get_controller
from config.settings import get_settings
from dialogue.events import classify_event, extract_utterance, resolve_call_id
from dialogue.schemas import InboundEvent, Instruction
from integrations.audio_buffer import AudioBuffer

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])


def parse_stream_message(text: str) -> dict[str, Any] | None:
    try:
        message = json.loads(text)
    except json.JSONDecodeError:
        return None
    return message if isinstance(message, dict) else None


class StreamConnection:
    """Per-socket state: the call id, its audio buffer and in-flight turns."""

    def __init__(self, websocket: WebSocket, call_id: str, controller, *, buffer_bytes: int) -> None:
        self.websocket = websocket
        self.call_id = call_id
        self.audio = AudioBuffer(max_bytes=buffer_bytes)
        self.closed = False
        self._controller = controller
        self._send_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    async def run_turn(self, event: InboundEvent) -> None:
        instruction = await self._controller.handle_event(event)
        consumed = self.audio.drain()
        LOGGER.debug("Turn on call_id=%s consumed %d audio bytes", self.call_id, len(consumed))
        await self.send_instruction(instruction)

    def spawn_turn(self, event: InboundEvent) -> None:
        # Each utterance is its own task so a second one can be rejected while
        # the first is still waiting on the completion service.
        task = asyncio.create_task(self.run_turn(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def send_instruction(self, instruction: Instruction) -> None:
        await self._send({"type": "say", "text": instruction.text})
        if instruction.ends_call:
            await self._send({"type": "hangup"})
            await self.close()

    async def _send(self, message: dict[str, Any]) -> None:
        async with self._send_lock:
            if self.closed:
                LOGGER.debug("Dropping %s frame for closed call_id=%s", message["type"], self.call_id)
                return
            try:
                await self.websocket.send_json(message)
            except (RuntimeError, WebSocketDisconnect):
                LOGGER.info("Peer gone before %s frame on call_id=%s", message["type"], self.call_id)
                self.closed = True

    async def close(self) -> None:
        """Stop emitting frames; replies still in flight are dropped."""

        if self.closed:
            return
        self.closed = True
        if (
            self.websocket.application_state != WebSocketState.DISCONNECTED
            and self.websocket.client_state != WebSocketState.DISCONNECTED
        ):
            await self.websocket.close()

    async def wait_pending(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


@router.websocket("/stream")
async def call_stream(websocket: WebSocket, controller=Depends(get_controller)) -> None:
    await websocket.accept()
    call_id = resolve_call_id(websocket.query_params)
    conn = StreamConnection(
        websocket,
        call_id,
        controller,
        buffer_bytes=get_settings().stream_audio_buffer_bytes,
    )
    LOGGER.info("Stream opened call_id=%s", call_id)

    try:
        await conn.run_turn(classify_event(call_id, None))
        while not conn.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if message.get("bytes") is not None:
                conn.audio.append(message["bytes"])
                continue
            payload = parse_stream_message(message.get("text") or "")
            if payload is None:
                LOGGER.warning("Ignoring malformed stream frame on call_id=%s", call_id)
                continue
            kind = payload.get("type")
            if kind == "utterance":
                conn.spawn_turn(classify_event(call_id, extract_utterance(payload) or ""))
            elif kind == "stop":
                break
            else:
                LOGGER.debug("Ignoring stream event %r on call_id=%s", kind, call_id)
    except WebSocketDisconnect:
        pass
    finally:
        LOGGER.info(
            "Stream closed call_id=%s audio_frames=%d dropped_bytes=%d",
            call_id,
            conn.audio.frames_received,
            conn.audio.bytes_dropped,
        )
        await controller.terminate(call_id)
        await conn.close()
        await conn.wait_pending()
