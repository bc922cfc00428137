"""Tests for the POST rate limiter on the chat and booking endpoints."""

from __future__ import annotations

import asyncio

import pytest
from backend.app.settings import settings
from backend.app.utils import RateLimiter, add_rate_limiting
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient


@pytest.fixture
def limited_client(monkeypatch):
    """A fresh app with only the limiter installed."""
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_REQUESTS", 3)
    monkeypatch.setattr(settings, "RATE_LIMIT_WINDOW_SECONDS", 60)
    app = FastAPI()
    add_rate_limiting(app)

    @app.post("/chat")
    def chat():
        return {"response": "ok"}

    @app.get("/events")
    def events():
        return {"events": []}

    return TestClient(app)


def _request(client_host: str, forwarded: str | None = None) -> Request:
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/chat",
        "headers": headers,
        "client": (client_host, 1234),
    }
    return Request(scope)


def test_posts_are_throttled_after_budget(limited_client):
    statuses = [limited_client.post("/chat").status_code for _ in range(4)]

    assert statuses == [200, 200, 200, 429]
    rejected = limited_client.post("/chat")
    assert rejected.json()["error"].startswith("Demasiadas solicitudes")
    assert int(rejected.headers["Retry-After"]) >= 1


def test_reads_are_never_throttled(limited_client):
    statuses = {limited_client.get("/events").status_code for _ in range(10)}

    assert statuses == {200}


def test_disabled_limiter_passes_everything(limited_client, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)

    statuses = {limited_client.post("/chat").status_code for _ in range(10)}

    assert statuses == {200}


def test_forwarded_for_trusted_only_from_loopback():
    limiter = RateLimiter()

    assert limiter._identifier_for(_request("127.0.0.1", "203.0.113.9")) == "203.0.113.9"
    assert limiter._identifier_for(_request("198.51.100.7", "203.0.113.9")) == "198.51.100.7"
    assert limiter._identifier_for(_request("127.0.0.1", "not-an-ip")) == "127.0.0.1"
    assert limiter._identifier_for(_request("198.51.100.7")) == "198.51.100.7"


def test_reset_clears_buckets(limited_client):
    for _ in range(3):
        limited_client.post("/chat")
    assert limited_client.post("/chat").status_code == 429

    limited_client.app.state.rate_limiter.reset()

    assert limited_client.post("/chat").status_code == 200


def test_idle_buckets_are_evicted():
    limiter = RateLimiter()

    async def scenario():
        for index in range(500):
            await limiter._consume(f"198.51.100.{index}", 3, 60, 1000.0)
        assert len(limiter._buckets) == 500
        # one window later nothing is idle long enough yet
        await limiter._consume("203.0.113.1", 3, 60, 1060.0)
        assert len(limiter._buckets) == 501
        await limiter._consume("203.0.113.1", 3, 60, 1200.0)

    asyncio.run(scenario())

    assert list(limiter._buckets) == ["203.0.113.1"]
