from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from backend.app import llm_client
from backend.app.llm_client import (
    LLMError,
    LLMNotConfigured,
    ModelNotFound,
    ModelOverloaded,
    chat_completion,
    classify_error,
)
from backend.app.settings import settings


@pytest.mark.parametrize(
    ("status", "body", "expected"),
    [
        (404, "", ModelNotFound),
        (400, '{"error":{"code":"model_decommissioned"}}', ModelNotFound),
        (400, "The model `llama-2` does not exist", ModelNotFound),
        (429, "", ModelOverloaded),
        (503, "", ModelOverloaded),
        (529, "", ModelOverloaded),
        (400, '{"error":{"message":"Service Unavailable"}}', ModelOverloaded),
        (400, '{"error":{"type":"rate_limit_exceeded"}}', ModelOverloaded),
        (400, "invalid messages", LLMError),
        (401, "invalid api key", LLMError),
    ],
)
def test_classify_error(status, body, expected):
    assert classify_error(status, body) is expected


def _mock_client(monkeypatch, handler):
    client = httpx.AsyncClient(
        base_url="https://llm.test/v1", transport=httpx.MockTransport(handler)
    )
    monkeypatch.setattr(llm_client, "_client", client)
    return client


def test_chat_completion_sends_payload_and_strips_content(monkeypatch):
    settings.LLM_API_KEY = "test-key"
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Hola 🖤 \n"}}]})

    _mock_client(monkeypatch, handler)
    messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "hola"}]

    text = asyncio.run(chat_completion("llama-3.3-70b-versatile", messages))

    assert text == "Hola 🖤"
    assert seen["path"] == "/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"] == {
        "model": "llama-3.3-70b-versatile",
        "messages": messages,
        "temperature": 0.7,
        "max_tokens": 1024,
    }


def test_chat_completion_without_choices_returns_empty(monkeypatch):
    settings.LLM_API_KEY = "test-key"
    _mock_client(monkeypatch, lambda request: httpx.Response(200, json={"choices": []}))

    assert asyncio.run(chat_completion("m", [])) == ""


@pytest.mark.parametrize(
    ("status", "expected"),
    [(503, ModelOverloaded), (404, ModelNotFound), (400, LLMError)],
)
def test_http_errors_are_classified(monkeypatch, status, expected):
    settings.LLM_API_KEY = "test-key"
    _mock_client(monkeypatch, lambda request: httpx.Response(status, text="nope"))

    with pytest.raises(expected) as excinfo:
        asyncio.run(chat_completion("m", []))

    assert excinfo.value.status_code == status


def test_timeout_counts_as_overloaded(monkeypatch):
    settings.LLM_API_KEY = "test-key"

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    _mock_client(monkeypatch, handler)

    with pytest.raises(ModelOverloaded):
        asyncio.run(chat_completion("m", []))


def test_missing_key_raises_not_configured(monkeypatch):
    _mock_client(monkeypatch, lambda request: httpx.Response(200, json={}))

    with pytest.raises(LLMNotConfigured):
        asyncio.run(chat_completion("m", []))
