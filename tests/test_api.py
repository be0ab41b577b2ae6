import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

import main
from agent.advisor import MarketAdvisor
from agent.aggregator import Aggregator
from agent.symbol_resolver import SymbolResolver
from data.chat_history import ConversationStore


@pytest.fixture
def advisor(provider, catalog, cache):
    return MarketAdvisor(
        Aggregator(provider, catalog, cache),
        SymbolResolver(catalog),
        catalog,
        ConversationStore(),
    )


@pytest.fixture
def client(advisor, catalog, cache):
    replacements = {
        "advisor": advisor,
        "catalog": catalog,
        "cache": cache,
        "conversations": advisor.conversations,
    }
    with patch.dict(main.services, replacements), patch.object(main, "AGENT_API_KEY", None):
        main.limiter.reset()
        yield TestClient(main.app)


def test_root_and_ping(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/ping").json() == {"status": "ok"}


def test_health(client):
    body = client.get("/health").json()
    assert body["catalogs"] == {"stock": "loaded", "forex": "loaded", "crypto": "loaded"}
    assert body["llm_configured"] is False
    assert "twelvedata" in body["credits"]["providers"]


class TestQuery:
    def test_data_answer_envelope(self, client):
        resp = client.post("/api/query", json={"query": "What's the price of AAPL?", "conversation_id": "web-1"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "ok"
        assert body["error"] is None
        assert body["conversation_id"] == "web-1"
        assert body["result"]["type"] == "data"
        assert body["result"]["symbol"] == "AAPL"
        assert body["meta"]["asset_class"] == "stock"

    def test_prompt_field_accepted(self, client):
        resp = client.post("/api/query", json={"prompt": "EURUSD rate", "asset_class": "FOREX"})
        body = resp.json()
        assert body["result"]["symbol"] == "EUR/USD"
        assert body["conversation_id"]

    def test_clarification_answer(self, client):
        body = client.post("/api/query", json={"query": "tell me something"}).json()
        assert body["type"] == "ok"
        assert body["result"]["type"] == "clarification"

    def test_empty_query(self, client):
        resp = client.post("/api/query", json={"query": "   "})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "NO_QUERY"

    def test_unknown_asset_class(self, client):
        resp = client.post("/api/query", json={"query": "AAPL", "asset_class": "bonds"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "UNKNOWN_ASSET_CLASS"

    def test_invalid_conversation_id(self, client):
        resp = client.post("/api/query", json={"query": "AAPL", "conversation_id": "bad id!"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "BAD_REQUEST"

    def test_validation_error(self, client):
        resp = client.post("/api/query", json={"query": ["not", "a", "string"]})
        assert resp.status_code == 422
        assert "request_id" in resp.json()

    def test_api_key_required_when_configured(self, client):
        with patch.object(main, "AGENT_API_KEY", "secret"):
            denied = client.post("/api/query", json={"query": "AAPL"})
            allowed = client.post("/api/query", json={"query": "AAPL"}, headers={"X-API-Key": "secret"})
        assert denied.status_code == 403
        assert denied.json()["error"]["code"] == "AUTH_FAILED"
        assert allowed.status_code == 200

    def test_timeout_envelope(self, client, advisor):
        async def hang(*args, **kwargs):
            await asyncio.Event().wait()

        with patch.object(main, "QUERY_TIMEOUT", 0.05), \
                patch.object(advisor, "handle_turn", AsyncMock(side_effect=hang)):
            resp = client.post("/api/query", json={"query": "AAPL"})
        assert resp.status_code == 200
        assert resp.json()["error"]["code"] == "REQUEST_TIMEOUT"

    def test_unhandled_exception(self, client, advisor):
        with patch.object(advisor, "handle_turn", AsyncMock(side_effect=RuntimeError("boom"))):
            resp = client.post("/api/query", json={"query": "AAPL"})
        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "UNHANDLED_EXCEPTION"


def test_instrument_search(client):
    body = client.get("/api/instruments/forex", params={"q": "EUR"}).json()
    assert body["available"] is True
    assert [i["symbol"] for i in body["instruments"]] == ["EUR/GBP", "EUR/JPY", "EUR/USD"]

    popular = client.get("/api/instruments/crypto").json()
    assert popular["instruments"][0]["symbol"] == "BTC/USD"

    assert client.get("/api/instruments/bonds").status_code == 400


def test_cache_clear(client, cache):
    cache.set("QUOTE:AAPL", {"price": 1})
    with patch.object(main, "AGENT_API_KEY", "secret"):
        assert client.post("/api/cache/clear").status_code == 403
        assert client.post("/api/cache/clear", headers={"X-API-Key": "secret"}).status_code == 200
    assert cache.size == 0


def test_rate_limit(client):
    statuses = [client.post("/api/cache/clear").status_code for _ in range(6)]
    assert statuses[:5] == [200] * 5
    assert statuses[5] == 429


def test_conversation_crud(client):
    created = client.post("/api/conversations", json={"conversation_id": "chat-1"}).json()
    assert created["id"] == "chat-1"

    client.post("/api/query", json={"query": "TSLA price", "conversation_id": "chat-1"})
    detail = client.get("/api/conversations/chat-1").json()
    assert detail["last_symbol"] == "TSLA"
    assert len(detail["messages"]) == 2

    listed = client.get("/api/conversations").json()["conversations"]
    assert [c["id"] for c in listed] == ["chat-1"]

    assert client.delete("/api/conversations/chat-1").json() == {"success": True}
    assert client.get("/api/conversations/chat-1").status_code == 404
    assert client.post("/api/conversations", json={"conversation_id": "bad id!"}).status_code == 400
