import os
import sys

import httpx
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import AsyncMock, MagicMock
from agent.advisor import MarketAdvisor, failure_kind
from agent.aggregator import Aggregator
from agent.symbol_resolver import SymbolResolver
from config import Settings
from data.chat_history import ConversationStore
from data.fetch_client import (
    FetchFailedError,
    RateLimitExceededError,
    UpstreamError,
)


def _advisor(provider, catalog, cache, settings=None, llm=None):
    settings = settings or Settings()
    return MarketAdvisor(
        aggregator=Aggregator(provider, catalog, cache, settings=settings),
        resolver=SymbolResolver(catalog),
        catalog=catalog,
        conversations=ConversationStore(),
        settings=settings,
        llm=llm,
    )


def _llm(text="AAPL looks constructive above 180."):
    block = MagicMock()
    block.text = text
    llm = MagicMock()
    llm.messages.create.return_value = MagicMock(content=[block])
    return llm


@pytest.fixture
def advisor(provider, catalog, cache):
    return _advisor(provider, catalog, cache)


class TestTurns:
    @pytest.mark.asyncio
    async def test_data_turn_records_history(self, advisor):
        out = await advisor.handle_turn("s1", "What's the price of AAPL?", "stock")

        assert out["type"] == "data"
        assert out["conversation_id"] == "s1"
        assert out["symbol"] == "AAPL"
        assert out["strategy"] == "pattern"
        assert "API Data: " in out["prompt"]
        assert "Price: 100" in out["message"]

        conv = advisor.conversations.get("s1")
        assert conv["last_symbol"] == "AAPL"
        assert [m["role"] for m in conv["messages"]] == ["user", "assistant"]
        assert conv["messages"][0]["symbol"] == "AAPL"

    @pytest.mark.asyncio
    async def test_follow_up_uses_history(self, advisor, provider):
        await advisor.handle_turn("s1", "What's the price of AAPL?", "stock")
        out = await advisor.handle_turn("s1", "what about its RSI", "stock")

        assert out["type"] == "data"
        assert out["symbol"] == "AAPL"
        assert out["strategy"] == "history"
        assert "rsi" in out["payload"]["categories"]
        assert "Recent Chat History" in out["prompt"]
        provider.get_indicator.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_new_conversation_created_when_missing(self, advisor):
        out = await advisor.handle_turn(None, "TSLA price", "stock")
        assert out["conversation_id"]
        assert advisor.conversations.get(out["conversation_id"])["title"] == "TSLA price"

    @pytest.mark.asyncio
    async def test_unresolved_returns_clarification(self, advisor, provider):
        out = await advisor.handle_turn("s1", "hi", "crypto")

        assert out["type"] == "clarification"
        assert out["payload"]["kind"] == "suggestions"
        assert provider.upstream_calls() == 0
        assert advisor.conversations.get("s1")["last_symbol"] is None

    @pytest.mark.asyncio
    async def test_default_instrument_policy(self, provider, catalog, cache):
        advisor = _advisor(provider, catalog, cache,
                           settings=Settings(unresolved_policy="default_instrument"))
        out = await advisor.handle_turn("s1", "hi", "crypto")

        assert out["type"] == "data"
        assert out["symbol"] == "BTC/USD"
        assert out["strategy"] == "default"

    @pytest.mark.asyncio
    async def test_default_policy_ignores_longer_questions(self, provider, catalog, cache):
        advisor = _advisor(provider, catalog, cache,
                           settings=Settings(unresolved_policy="default_instrument"))
        out = await advisor.handle_turn("s1", "tell me about the blorp coin please", "crypto")
        assert out["type"] == "clarification"


class TestFallbacks:
    @pytest.mark.asyncio
    async def test_network_failure(self, advisor, provider):
        provider.get_quote = AsyncMock(side_effect=FetchFailedError("Fetch failed after 3 attempts: ConnectError"))
        out = await advisor.handle_turn("s1", "AAPL price", "stock")

        assert out["type"] == "fallback"
        assert out["failure"] == "network"
        assert out["message"].startswith("**Network Issue Detected**")

    @pytest.mark.asyncio
    async def test_api_failure(self, advisor, provider):
        provider.get_quote = AsyncMock(side_effect=UpstreamError(401, "invalid api key"))
        out = await advisor.handle_turn("s1", "AAPL price", "stock")

        assert out["failure"] == "api"
        assert out["message"].startswith("**Market Data Service Issue**")

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, advisor):
        advisor.aggregator.aggregate = AsyncMock(side_effect=RuntimeError("boom"))
        out = await advisor.handle_turn("s1", "AAPL price", "stock")

        assert out["failure"] == "unknown"
        assert out["message"].startswith("**Technical Issue Encountered**")
        assert advisor.conversations.history("s1")[-1]["role"] == "assistant"

    @pytest.mark.asyncio
    async def test_partial_failure_still_answers(self, advisor, provider):
        provider.get_indicator = AsyncMock(side_effect=RateLimitExceededError("Rate limit exceeded after maximum retries"))
        out = await advisor.handle_turn("s1", "AAPL price and RSI", "stock")

        assert out["type"] == "data"
        assert "RSI: unavailable" in out["message"]


class TestLanguageModel:
    @pytest.mark.asyncio
    async def test_answer_comes_from_model(self, provider, catalog, cache):
        llm = _llm()
        advisor = _advisor(provider, catalog, cache, llm=llm)
        out = await advisor.handle_turn("s1", "AAPL price", "stock")

        assert out["message"] == "AAPL looks constructive above 180."
        kwargs = llm.messages.create.call_args.kwargs
        assert kwargs["messages"][0]["content"] == out["prompt"]
        assert "API Data" in kwargs["system"]

    @pytest.mark.asyncio
    async def test_model_error_falls_back_to_summary(self, provider, catalog, cache):
        llm = MagicMock()
        llm.messages.create.side_effect = RuntimeError("overloaded")
        advisor = _advisor(provider, catalog, cache, llm=llm)
        out = await advisor.handle_turn("s1", "AAPL price", "stock")

        assert out["type"] == "data"
        assert out["message"].startswith("**AAPL (Apple Inc)**")


def test_failure_kind():
    assert failure_kind(FetchFailedError("x")) == "network"
    assert failure_kind(UpstreamError(500)) == "api"
    assert failure_kind(RateLimitExceededError("x")) == "api"
    assert failure_kind(httpx.ConnectError("refused")) == "network"
    assert failure_kind(ValueError("bad")) == "unknown"


@pytest.mark.asyncio
async def test_unknown_symbol_lists_popular_without_fetching(advisor, provider):
    out = await advisor.handle_turn("s1", "XYZAB please", "stock")

    assert out["type"] == "clarification"
    suggested = [i["symbol"] for i in out["payload"]["suggestions"]]
    assert suggested[:3] == ["AAPL", "TSLA", "MSFT"]
    assert provider.upstream_calls() == 0
