"""Opaque inbound audio buffering for streaming connections.

Audio frames are kept in arrival order and never decoded here; whatever
consumes them (an external recognizer, a recording sink) drains the buffer.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)


@dataclass
class AudioBuffer:
    """Bounded FIFO of raw audio frames; the oldest bytes go first when full."""

    max_bytes: int = 1_048_576
    frames_received: int = 0
    bytes_dropped: int = 0
    _frames: deque[bytes] = field(default_factory=deque, init=False, repr=False)
    _size: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.max_bytes < 1:
            raise ValueError("max_bytes must be positive.")

    def __len__(self) -> int:
        return self._size

    def append(self, frame: bytes) -> None:
        if not frame:
            return
        self.frames_received += 1
        if len(frame) > self.max_bytes:
            self.bytes_dropped += len(frame) - self.max_bytes
            frame = frame[-self.max_bytes :]
        self._frames.append(frame)
        self._size += len(frame)
        while self._size > self.max_bytes:
            overflow = self._size - self.max_bytes
            head = self._frames[0]
            if len(head) <= overflow:
                self._frames.popleft()
                self._size -= len(head)
                self.bytes_dropped += len(head)
            else:
                self._frames[0] = head[overflow:]
                self._size -= overflow
                self.bytes_dropped += overflow

    def drain(self) -> bytes:
        """Return everything buffered so far and reset the buffer."""

        data = b"".join(self._frames)
        self._frames.clear()
        self._size = 0
        return data
