from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from llm.factory import build_llm_client
from llm.vllm_client import VLLMClient


def test_vllm_client_posts_chat_completion(settings_env):
    settings_env(llm_provider="self_hosted_vllm", llm_endpoint="http://llm.local/", llm_api_key="k", llm_model="m")
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "नमस्ते"}}]})

    client = VLLMClient(transport=httpx.MockTransport(handler))
    reply = asyncio.run(client.chat([{"role": "user", "content": "hi"}], temperature=0.3))

    assert reply == "नमस्ते"
    assert str(seen[0].url) == "http://llm.local/v1/chat/completions"
    assert seen[0].headers["authorization"] == "Bearer k"
    body = json.loads(seen[0].content)
    assert body["model"] == "m"
    assert body["temperature"] == 0.3
    assert body["messages"] == [{"role": "user", "content": "hi"}]


def test_vllm_client_rejects_empty_choices(settings_env):
    settings_env(llm_endpoint="http://llm.local")
    client = VLLMClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []})))

    with pytest.raises(RuntimeError):
        asyncio.run(client.chat([{"role": "user", "content": "hi"}]))


def test_vllm_client_raises_on_http_error(settings_env):
    settings_env(llm_endpoint="http://llm.local")
    client = VLLMClient(transport=httpx.MockTransport(lambda request: httpx.Response(429)))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.chat([{"role": "user", "content": "hi"}]))


def test_vllm_client_requires_endpoint(settings_env):
    settings_env(llm_endpoint="")
    with pytest.raises(ValueError):
        VLLMClient()


def test_factory_builds_self_hosted_client(settings_env):
    settings_env(llm_provider="self_hosted_vllm", llm_endpoint="http://llm.local")
    assert isinstance(build_llm_client(), VLLMClient)


def test_factory_builds_openai_client(settings_env):
    import llm.factory as factory
    from llm.openai_client import OpenAIClient

    settings_env(llm_provider="openai", llm_api_key="sk-test")
    assert factory.OpenAIClient is OpenAIClient
    assert isinstance(build_llm_client(), OpenAIClient)


def test_openai_key_alias_is_accepted(settings_env, monkeypatch):
    from config.settings import get_settings

    monkeypatch.delenv("LLM_API_KEY", raising=False)
    settings_env(openai_api_key="sk-alias")
    assert get_settings().llm_api_key == "sk-alias"
