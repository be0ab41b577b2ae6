import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import AsyncMock
from data.cache import CacheStore
from data.instrument_catalog import InstrumentCatalog
from data.models import (
    IndicatorResponse,
    Instrument,
    QuoteResponse,
    SeriesResponse,
)

NASDAQ_ROWS = [
    {"symbol": "AAPL", "name": "Apple Inc", "currency": "USD", "exchange": "NASDAQ"},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "currency": "USD", "exchange": "NASDAQ"},
    {"symbol": "TSLA", "name": "Tesla Inc", "currency": "USD", "exchange": "NASDAQ"},
    {"symbol": "GOOGL", "name": "Alphabet Inc", "currency": "USD", "exchange": "NASDAQ"},
    {"symbol": "AMZN", "name": "Amazon.com Inc", "currency": "USD", "exchange": "NASDAQ"},
    {"symbol": "NVDA", "name": "NVIDIA Corp", "currency": "USD", "exchange": "NASDAQ"},
    {"symbol": "COST", "name": "Costco Wholesale Corp", "currency": "USD", "exchange": "NASDAQ"},
]

NYSE_ROWS = [
    {"symbol": "AAPL", "name": "Apple duplicate listing", "currency": "USD", "exchange": "NYSE"},
    {"symbol": "V", "name": "Visa Inc", "currency": "USD", "exchange": "NYSE"},
    {"symbol": "KO", "name": "Coca-Cola Co", "currency": "USD", "exchange": "NYSE"},
]

FOREX_ROWS = [
    {"symbol": s, "currency_group": "Major", "currency_base": b, "currency_quote": q}
    for s, b, q in [
        ("EUR/USD", "Euro", "US Dollar"),
        ("GBP/USD", "British Pound", "US Dollar"),
        ("USD/JPY", "US Dollar", "Japanese Yen"),
        ("EUR/JPY", "Euro", "Japanese Yen"),
        ("GBP/JPY", "British Pound", "Japanese Yen"),
        ("AUD/USD", "Australian Dollar", "US Dollar"),
        ("USD/CAD", "US Dollar", "Canadian Dollar"),
        ("USD/CHF", "US Dollar", "Swiss Franc"),
        ("EUR/GBP", "Euro", "British Pound"),
        ("NZD/USD", "New Zealand Dollar", "US Dollar"),
    ]
]

CRYPTO_ROWS = [
    {"symbol": s, "currency_base": b, "currency_quote": q, "available_exchanges": ["Binance"]}
    for s, b, q in [
        ("BTC/USD", "Bitcoin", "US Dollar"),
        ("ETH/USD", "Ethereum", "US Dollar"),
        ("ETH/BTC", "Ethereum", "Bitcoin"),
        ("SOL/USD", "Solana", "US Dollar"),
        ("ADA/USD", "Cardano", "US Dollar"),
    ]
]


def quote_for(symbol, price=100.0):
    return QuoteResponse(symbol=symbol, name=f"{symbol} name", price=price, change=1.0,
                         change_percent=1.0, volume=1000.0)


def indicator_for(name, symbol="AAPL"):
    return IndicatorResponse(name=name, symbol=symbol, values=[
        {"datetime": "2026-10-16", name: 55.5},
        {"datetime": "2026-10-15", name: 50.0},
    ])


class FakeProvider:
    """Stands in for TwelveDataProvider; every call is an AsyncMock."""

    def __init__(self):
        self.list_stocks = AsyncMock(side_effect=lambda exchange: {
            "NASDAQ": NASDAQ_ROWS, "NYSE": NYSE_ROWS,
        }.get(exchange, []))
        self.list_forex_pairs = AsyncMock(return_value=FOREX_ROWS)
        self.list_cryptocurrencies = AsyncMock(return_value=CRYPTO_ROWS)
        self.get_quote = AsyncMock(side_effect=lambda symbol, budget=None: quote_for(symbol))
        self.get_time_series = AsyncMock(
            side_effect=lambda symbol, outputsize=30, budget=None: SeriesResponse(symbol=symbol, values=[]),
        )
        self.get_indicator = AsyncMock(
            side_effect=lambda name, symbol, outputsize=30, budget=None: indicator_for(name, symbol),
        )

    def upstream_calls(self):
        return (self.get_quote.await_count + self.get_time_series.await_count
                + self.get_indicator.await_count)


def instruments_from_rows():
    stocks = {}
    for row in NASDAQ_ROWS + NYSE_ROWS:
        inst = Instrument.from_stock_row(row)
        stocks.setdefault(inst.symbol, inst)
    return {
        "stock": list(stocks.values()),
        "forex": [Instrument.from_forex_row(r) for r in FOREX_ROWS],
        "crypto": [Instrument.from_crypto_row(r) for r in CRYPTO_ROWS],
    }


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def cache():
    return CacheStore()


@pytest.fixture
def catalog(provider, cache):
    """Catalog with every asset class already indexed."""
    cat = InstrumentCatalog(provider, cache)
    for asset_class, instruments in instruments_from_rows().items():
        cat.install(asset_class, instruments)
    return cat
