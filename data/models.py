"""
Typed shapes for instruments, upstream payloads and per-turn results.

Upstream responses are parsed at the boundary into tagged models; a missing or
malformed field becomes None instead of propagating through the pipeline.
"""
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

AssetClass = Literal["stock", "forex", "crypto"]


def _to_float(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_str(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _as_dict(raw) -> dict:
    return raw if isinstance(raw, dict) else {}


class Instrument(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    display_name: str
    asset_class: AssetClass
    exchange: str | None = None
    base_currency: str | None = None
    quote_currency: str | None = None
    currency_group: str | None = None

    @classmethod
    def from_stock_row(cls, row: dict) -> "Instrument | None":
        symbol = _to_str(_as_dict(row).get("symbol"))
        if not symbol:
            return None
        return cls(
            symbol=symbol.upper(),
            display_name=_to_str(row.get("name")) or symbol.upper(),
            asset_class="stock",
            exchange=_to_str(row.get("exchange")),
            quote_currency=_to_str(row.get("currency")),
        )

    @classmethod
    def from_forex_row(cls, row: dict) -> "Instrument | None":
        symbol = _to_str(_as_dict(row).get("symbol"))
        if not symbol:
            return None
        base = _to_str(row.get("currency_base"))
        quote = _to_str(row.get("currency_quote"))
        name = f"{base} to {quote}" if base and quote else symbol.upper()
        return cls(
            symbol=symbol.upper(),
            display_name=name,
            asset_class="forex",
            exchange="FOREX",
            base_currency=base,
            quote_currency=quote,
            currency_group=_to_str(row.get("currency_group")),
        )

    @classmethod
    def from_crypto_row(cls, row: dict) -> "Instrument | None":
        symbol = _to_str(_as_dict(row).get("symbol"))
        if not symbol:
            return None
        base = _to_str(row.get("currency_base"))
        quote = _to_str(row.get("currency_quote"))
        name = f"{base} to {quote}" if base and quote else symbol.upper()
        exchanges = row.get("available_exchanges")
        exchange = exchanges[0] if isinstance(exchanges, list) and exchanges else None
        return cls(
            symbol=symbol.upper(),
            display_name=name,
            asset_class="crypto",
            exchange=_to_str(exchange),
            base_currency=base,
            quote_currency=quote,
        )

    def label(self) -> str:
        if self.display_name and self.display_name != self.symbol:
            return f"{self.symbol} ({self.display_name})"
        return self.symbol


class QuoteResponse(BaseModel):
    kind: Literal["quote"] = "quote"
    symbol: str | None = None
    name: str | None = None
    exchange: str | None = None
    currency: str | None = None
    price: float | None = None
    change: float | None = None
    change_percent: float | None = None
    volume: float | None = None
    previous_close: float | None = None
    fifty_two_week_high: float | None = None
    fifty_two_week_low: float | None = None

    @classmethod
    def parse(cls, raw) -> "QuoteResponse":
        raw = _as_dict(raw)
        week = _as_dict(raw.get("fifty_two_week"))
        price = raw.get("close") if raw.get("close") is not None else raw.get("price")
        change_pct = raw.get("percent_change")
        if change_pct is None:
            change_pct = raw.get("change_percent")
        return cls(
            symbol=_to_str(raw.get("symbol")),
            name=_to_str(raw.get("name")),
            exchange=_to_str(raw.get("exchange")),
            currency=_to_str(raw.get("currency")),
            price=_to_float(price),
            change=_to_float(raw.get("change")),
            change_percent=_to_float(change_pct),
            volume=_to_float(raw.get("volume")),
            previous_close=_to_float(raw.get("previous_close")),
            fifty_two_week_high=_to_float(week.get("high")),
            fifty_two_week_low=_to_float(week.get("low")),
        )


class SeriesPoint(BaseModel):
    datetime: str | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None


class SeriesResponse(BaseModel):
    kind: Literal["series"] = "series"
    symbol: str | None = None
    interval: str | None = None
    values: list[SeriesPoint] = Field(default_factory=list)

    @classmethod
    def parse(cls, raw) -> "SeriesResponse":
        raw = _as_dict(raw)
        meta = _as_dict(raw.get("meta"))
        points = []
        for v in raw.get("values") or []:
            if not isinstance(v, dict):
                continue
            points.append(SeriesPoint(
                datetime=_to_str(v.get("datetime")),
                open=_to_float(v.get("open")),
                high=_to_float(v.get("high")),
                low=_to_float(v.get("low")),
                close=_to_float(v.get("close")),
                volume=_to_float(v.get("volume")),
            ))
        return cls(
            symbol=_to_str(meta.get("symbol")),
            interval=_to_str(meta.get("interval")),
            values=points,
        )


class IndicatorResponse(BaseModel):
    kind: Literal["indicator"] = "indicator"
    name: str
    symbol: str | None = None
    values: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def parse(cls, raw, name: str) -> "IndicatorResponse":
        raw = _as_dict(raw)
        meta = _as_dict(raw.get("meta"))
        values = []
        for v in raw.get("values") or []:
            if not isinstance(v, dict):
                continue
            row = {}
            for k, val in v.items():
                if k == "datetime":
                    row[k] = _to_str(val)
                else:
                    num = _to_float(val)
                    row[k] = num if num is not None else val
            values.append(row)
        return cls(name=name, symbol=_to_str(meta.get("symbol")), values=values)


class SentimentResponse(BaseModel):
    kind: Literal["sentiment"] = "sentiment"
    symbol: str | None = None
    bullish_percentage: float | None = None
    bearish_percentage: float | None = None
    total_posts: int | None = None
    overall_sentiment: str | None = None
    confidence: str | None = None

    @classmethod
    def parse(cls, raw) -> "SentimentResponse":
        raw = _as_dict(raw)
        posts = _to_float(raw.get("total_posts"))
        return cls(
            symbol=_to_str(raw.get("symbol")),
            bullish_percentage=_to_float(raw.get("bullish_percentage")),
            bearish_percentage=_to_float(raw.get("bearish_percentage")),
            total_posts=int(posts) if posts is not None else None,
            overall_sentiment=_to_str(raw.get("overall_sentiment")),
            confidence=_to_str(raw.get("confidence")),
        )


class IntelligenceResponse(BaseModel):
    kind: Literal["intelligence"] = "intelligence"
    symbol: str | None = None
    analysis: str | None = None
    alerts: list[Any] | None = None
    error: str | None = None

    @classmethod
    def parse(cls, raw) -> "IntelligenceResponse":
        raw = _as_dict(raw)
        analysis = raw.get("synthesizedAnalysis") or raw.get("analysis")
        alerts = raw.get("alerts")
        if alerts is not None and not isinstance(alerts, list):
            alerts = [alerts]
        return cls(
            symbol=_to_str(raw.get("symbol")),
            analysis=analysis if isinstance(analysis, str) else None,
            alerts=alerts,
            error=_to_str(raw.get("error")),
        )


class Intent(BaseModel):
    needs_quote: bool = False
    needs_series: bool = False
    indicators: list[str] = Field(default_factory=list)
    needs_sentiment: bool = False
    needs_intelligence: bool = False
    needs_comprehensive: bool = False

    def categories(self) -> list[str]:
        cats = []
        if self.needs_quote:
            cats.append("quote")
        if self.needs_series:
            cats.append("time_series")
        cats.extend(self.indicators)
        if self.needs_sentiment:
            cats.append("sentiment")
        if self.needs_intelligence:
            cats.extend(["intelligence", "alerts"])
        return cats


class ResolvedQuery(BaseModel):
    text: str
    asset_class: AssetClass
    instrument: Instrument | None = None
    intent: Intent = Field(default_factory=Intent)
    is_general_query: bool = False
    resolution_strategy: str | None = None


class ClarificationResponse(BaseModel):
    kind: Literal["general_help", "suggestions", "not_found"]
    message: str
    suggestions: list[Instrument] = Field(default_factory=list)


class BoundedPayload(BaseModel):
    symbol: str
    asset_class: AssetClass
    categories: dict[str, Any] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    error_kinds: dict[str, str] = Field(default_factory=dict)
    serialized: str = ""
    truncated: bool = False
    api_calls: int = 0
    cache_hits: int = 0
