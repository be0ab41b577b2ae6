import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import AsyncMock
from data.cache import CATALOG_RETRY_TTL, CacheStore
from data.fetch_client import FetchFailedError, RateLimitExceededError
from data.instrument_catalog import InstrumentCatalog
from data.models import Instrument


@pytest.mark.asyncio
async def test_stock_listing_merges_exchanges_first_wins(provider, cache):
    catalog = InstrumentCatalog(provider, cache)
    loaded = await catalog.load_all("stock")

    symbols = [i.symbol for i in loaded]
    assert symbols.count("AAPL") == 1
    assert {"AAPL", "MSFT", "V", "KO", "COST"} <= set(symbols)
    assert catalog.get("AAPL", "stock").display_name == "Apple Inc"
    assert catalog.get("aapl", "stock").exchange == "NASDAQ"
    assert catalog.validate("MSFT", "stock") is True
    assert catalog.validate("QWZK", "stock") is False


@pytest.mark.asyncio
async def test_catalog_is_cached_between_loads(provider, cache):
    catalog = InstrumentCatalog(provider, cache)
    await catalog.load_all("forex")
    await catalog.load_all("forex")
    assert provider.list_forex_pairs.await_count == 1

    fresh = InstrumentCatalog(provider, cache)
    await fresh.load_all("forex")
    assert provider.list_forex_pairs.await_count == 1
    assert fresh.validate("EUR/USD", "forex") is True


@pytest.mark.asyncio
async def test_failed_listing_marks_class_unavailable(provider, cache):
    provider.list_cryptocurrencies = AsyncMock(side_effect=FetchFailedError("Fetch failed after 3 attempts: boom"))
    catalog = InstrumentCatalog(provider, cache)

    assert await catalog.load_all("crypto") == []
    assert not catalog.is_available("crypto")
    assert catalog.validate("BTC/USD", "crypto") is None
    assert cache.get("CATALOG:CRYPTO", 60) is None


@pytest.mark.asyncio
async def test_one_exchange_failing_still_loads_the_other(provider, cache):
    async def listing(exchange):
        if exchange == "NYSE":
            raise RateLimitExceededError("Daily TwelveData credit limit reached")
        return [{"symbol": "AAPL", "name": "Apple Inc", "exchange": "NASDAQ"}]

    provider.list_stocks = AsyncMock(side_effect=listing)
    catalog = InstrumentCatalog(provider, cache)
    loaded = await catalog.load_all("stock")
    assert [i.symbol for i in loaded] == ["AAPL"]
    assert catalog.is_available("stock")


@pytest.mark.asyncio
async def test_empty_listing_is_unavailable(provider, cache):
    provider.list_forex_pairs = AsyncMock(return_value=[])
    catalog = InstrumentCatalog(provider, cache)
    assert await catalog.load_all("forex") == []
    assert catalog.validate("EUR/USD", "forex") is None


@pytest.mark.asyncio
async def test_failed_listing_is_not_refetched_inside_retry_window(provider):
    now = [1000.0]
    cache = CacheStore(clock=lambda: now[0])
    provider.list_stocks = AsyncMock(side_effect=FetchFailedError("Fetch failed after 3 attempts: ConnectError"))
    catalog = InstrumentCatalog(provider, cache)

    for _ in range(3):
        assert await catalog.load_all("stock") == []
    assert provider.list_stocks.await_count == 2
    assert catalog.validate("AAPL", "stock") is None


@pytest.mark.asyncio
async def test_recovers_after_retry_window(provider):
    now = [1000.0]
    cache = CacheStore(clock=lambda: now[0])
    provider.list_forex_pairs = AsyncMock(side_effect=FetchFailedError("down"))
    catalog = InstrumentCatalog(provider, cache)
    await catalog.load_all("forex")
    assert not catalog.is_available("forex")

    provider.list_forex_pairs = AsyncMock(return_value=[{"symbol": "EUR/USD"}])
    await catalog.load_all("forex")
    provider.list_forex_pairs.assert_not_awaited()

    now[0] += CATALOG_RETRY_TTL + 1
    await catalog.load_all("forex")
    assert catalog.validate("EUR/USD", "forex") is True


@pytest.mark.asyncio
async def test_cache_clear_allows_immediate_retry(provider, cache):
    provider.list_cryptocurrencies = AsyncMock(return_value=[])
    catalog = InstrumentCatalog(provider, cache)
    await catalog.load_all("crypto")
    cache.clear()
    await catalog.load_all("crypto")
    assert provider.list_cryptocurrencies.await_count == 2


def test_closest_symbol_within_two_edits(catalog):
    assert catalog.closest_symbol("MSXY", "stock").symbol == "MSFT"
    assert catalog.closest_symbol("QWZK", "stock") is None
    assert catalog.closest_symbol("EURUSD", "forex").symbol == "EUR/USD"


def test_find_by_name_and_closest_name(catalog):
    assert catalog.find_by_name("costco", "stock").symbol == "COST"
    assert catalog.find_by_name("nothing like it", "stock") is None
    assert catalog.closest_name("nvidea", "stock").symbol == "NVDA"
    assert catalog.closest_name("", "stock") is None


def test_name_matching_uses_whole_words(catalog):
    extra = [
        Instrument(symbol="CG", display_name="Carlyle Group Holdings Inc", asset_class="stock"),
        Instrument(symbol="LTH", display_name="Latham Group Inc", asset_class="stock"),
    ]
    catalog.install("stock", catalog.instruments("stock") + extra)

    assert catalog.find_by_name("holding", "stock") is None
    assert catalog.find_by_name("carlyle group", "stock").symbol == "CG"
    assert catalog.closest_name("lately", "stock") is None
    assert catalog.closest_name("lathem", "stock").symbol == "LTH"


def test_generic_word_matching_many_names_is_ignored(catalog):
    firsts = [
        Instrument(symbol=s, display_name=f"First {n}", asset_class="stock")
        for s, n in [("FSLR", "Solar Inc"), ("FHN", "Horizon Corp"), ("FBP", "Bancorp"), ("FAF", "American Financial")]
    ]
    catalog.install("stock", catalog.instruments("stock") + firsts)

    assert catalog.find_by_name("first", "stock").symbol == "FAF"
    assert catalog.find_by_name("first", "stock", max_matches=3) is None


def test_suggest_ranks_substring_before_fuzzy(catalog):
    results = [i.symbol for i in catalog.suggest("EUR", "forex")]
    assert results == ["EUR/GBP", "EUR/JPY", "EUR/USD"]

    by_name = [i.symbol for i in catalog.suggest("bitcoin", "crypto")]
    assert by_name == ["BTC/USD", "ETH/BTC"]


def test_suggest_respects_limit(catalog):
    assert len(catalog.suggest("USD", "forex", limit=3)) == 3


def test_suggest_empty_query_returns_popular(catalog):
    popular = catalog.suggest("", "stock")
    assert [i.symbol for i in popular] == ["AAPL", "TSLA", "MSFT", "GOOGL", "AMZN"]
    assert popular[0].display_name == "Apple Inc"


def test_popular_without_catalog(provider, cache):
    catalog = InstrumentCatalog(provider, cache)
    popular = catalog.popular("crypto")
    assert popular
    assert all(i.asset_class == "crypto" for i in popular)
