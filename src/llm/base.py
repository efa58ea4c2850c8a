"""Shared abstraction for chat-completion clients."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class BaseLLMClient(ABC):
    """Abstract base class for completion providers.

    Implementations raise on transport errors or malformed responses; callers
    decide whether that ends the call.
    """

    @abstractmethod
    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.2,
    ) -> str:
        """Return the assistant reply for an ordered message list."""
