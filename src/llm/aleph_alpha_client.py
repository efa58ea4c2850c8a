"""Aleph Alpha chat API wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from aleph_alpha_client import AsyncClient
from aleph_alpha_client.chat import ChatRequest, Message, Role

from config.settings import get_settings
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)

_ROLES = {"system": Role.System, "user": Role.User, "assistant": Role.Assistant}


class AlephAlphaClient(BaseLLMClient):
    """Adapter for Aleph Alpha's hosted chat models."""

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.llm_api_key:
            raise ValueError("LLM API key must be configured for Aleph Alpha client.")

        self._client = AsyncClient(
            token=settings.llm_api_key,
            host=settings.llm_endpoint or "https://api.aleph-alpha.com",
        )
        self._model = settings.llm_model
        self._max_tokens = settings.llm_max_tokens

    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.2,
    ) -> str:
        chat_messages = [Message(role=_ROLES[msg["role"]], content=msg["content"]) for msg in messages]
        request = ChatRequest(
            messages=chat_messages,
            model=self._model,
            temperature=temperature,
            maximum_tokens=self._max_tokens,
        )
        response = await self._client.chat(request, model=self._model)
        return response.message.content
