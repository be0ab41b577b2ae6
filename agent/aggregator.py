"""
Aggregation pipeline: one resolved query -> one bounded payload.

Every requested category is fetched concurrently through the cache. A failing
category is recorded as {"error": message} and never sinks the others.
TwelveData calls share the turn's ApiCallBudget and run at most `threshold` at
a time, so the budget counter advances before later calls are dispatched and
the inter-call throttle can take effect.
"""
import asyncio

from agent.data_compressor import compact
from agent.prompts import general_help_message, not_found_message, suggestions_message
from agent.symbol_resolver import suggestion_hint
from api_budget import ApiCallBudget
from config import Settings
from data.cache import (
    INDICATOR_TTL,
    INTELLIGENCE_TTL,
    QUOTE_TTL,
    SENTIMENT_TTL,
    SERIES_TTL,
    CacheStore,
    cache_key,
)
from data.fetch_client import MarketDataError
from data.instrument_catalog import InstrumentCatalog
from data.intelligence_provider import IntelligenceProvider
from data.models import BoundedPayload, ClarificationResponse, Instrument, ResolvedQuery
from data.sentiment_provider import SentimentProvider
from data.twelvedata_provider import TwelveDataProvider

# Categories served by auxiliary routes; bounded by a wall-clock timeout.
COMPREHENSIVE_EXTRAS = ("sentiment", "intelligence", "alerts")

SERIES_OUTPUTSIZE = 30


def category_ttl(category: str) -> int:
    if category == "quote":
        return QUOTE_TTL
    if category == "time_series":
        return SERIES_TTL
    if category == "sentiment":
        return SENTIMENT_TTL
    if category in ("intelligence", "alerts"):
        return INTELLIGENCE_TTL
    return INDICATOR_TTL


class Aggregator:
    def __init__(
        self,
        provider: TwelveDataProvider,
        catalog: InstrumentCatalog,
        cache: CacheStore,
        sentiment: SentimentProvider | None = None,
        intelligence: IntelligenceProvider | None = None,
        settings: Settings | None = None,
    ):
        self.provider = provider
        self.catalog = catalog
        self.cache = cache
        self.sentiment = sentiment
        self.intelligence = intelligence
        self.settings = settings or Settings()

    def new_budget(self) -> ApiCallBudget:
        return ApiCallBudget(
            threshold=self.settings.api_call_threshold,
            throttle_delay=self.settings.request_delay_seconds,
        )

    def clarify(self, resolved: ResolvedQuery) -> ClarificationResponse | None:
        """Clarification for an unresolved or unknown instrument; None when data can be fetched."""
        asset_class = resolved.asset_class
        popular = self.catalog.popular(asset_class)

        if resolved.instrument is None:
            if resolved.is_general_query:
                return ClarificationResponse(
                    kind="general_help",
                    message=general_help_message(asset_class, popular),
                    suggestions=popular,
                )
            suggestions = self.catalog.suggest(suggestion_hint(resolved.text, asset_class), asset_class)
            return ClarificationResponse(
                kind="suggestions",
                message=suggestions_message(asset_class, suggestions, popular),
                suggestions=suggestions or popular,
            )

        symbol = resolved.instrument.symbol
        # None means the catalog is unavailable: carry on unvalidated.
        if self.catalog.validate(symbol, asset_class) is False:
            suggestions = self.catalog.suggest(symbol, asset_class)
            print(f"[AGG] {symbol} not in {asset_class} catalog")
            return ClarificationResponse(
                kind="not_found",
                message=not_found_message(symbol, asset_class, suggestions, popular),
                suggestions=suggestions or popular,
            )
        return None

    async def _load(self, category: str, symbol: str, budget: ApiCallBudget,
                    gate: asyncio.Semaphore):
        if category == "sentiment":
            return await self.sentiment.get_sentiment(symbol)
        if category == "intelligence":
            return await self.intelligence.get_comprehensive(symbol)
        if category == "alerts":
            return await self.intelligence.get_alerts(symbol)

        async with gate:
            if category == "quote":
                return await self.provider.get_quote(symbol, budget=budget)
            if category == "time_series":
                return await self.provider.get_time_series(symbol, SERIES_OUTPUTSIZE, budget=budget)
            return await self.provider.get_indicator(category, symbol, budget=budget)

    def _unconfigured(self, category: str) -> str | None:
        if category == "sentiment" and not (self.sentiment and self.sentiment.configured):
            return "Sentiment service not configured"
        if category in ("intelligence", "alerts") and not (self.intelligence and self.intelligence.configured):
            return "Market intelligence service not configured"
        return None

    async def _fetch_category(self, category: str, symbol: str, budget: ApiCallBudget,
                              gate: asyncio.Semaphore) -> tuple[str, object]:
        key = cache_key(category, symbol)
        cached = self.cache.get(key, category_ttl(category))
        if cached is not None:
            budget.record_cache_hit()
            return category, cached

        missing = self._unconfigured(category)
        if missing:
            return category, {"error": missing, "kind": "api"}

        timeout = self.settings.comprehensive_timeout
        try:
            if category in COMPREHENSIVE_EXTRAS:
                value = await asyncio.wait_for(self._load(category, symbol, budget, gate), timeout=timeout)
            else:
                value = await self._load(category, symbol, budget, gate)
        except asyncio.TimeoutError:
            print(f"[AGG] {category} for {symbol} timed out after {timeout:g}s")
            return category, {"error": f"Timed out after {timeout:g}s", "kind": "network"}
        except MarketDataError as e:
            print(f"[AGG] {category} for {symbol} failed: {e}")
            return category, {"error": str(e), "kind": e.kind}
        except Exception as e:
            print(f"[AGG] {category} for {symbol} unexpected error: {type(e).__name__}: {e}")
            return category, {"error": f"{type(e).__name__}: {e}", "kind": "unknown"}

        self.cache.set(key, value)
        return category, value

    async def fetch_all(self, instrument: Instrument, categories: list[str],
                        budget: ApiCallBudget) -> dict:
        gate = asyncio.Semaphore(max(1, budget.threshold))
        results = await asyncio.gather(*[
            self._fetch_category(cat, instrument.symbol, budget, gate) for cat in categories
        ])
        return dict(results)

    async def aggregate(self, resolved: ResolvedQuery,
                        budget: ApiCallBudget | None = None) -> BoundedPayload | ClarificationResponse:
        clarification = self.clarify(resolved)
        if clarification is not None:
            return clarification

        budget = budget or self.new_budget()
        instrument = resolved.instrument
        categories = resolved.intent.categories()
        raw = await self.fetch_all(instrument, categories, budget)

        errors = {
            cat: value["error"] for cat, value in raw.items()
            if isinstance(value, dict) and "error" in value
        }
        error_kinds = {cat: raw[cat].get("kind", "unknown") for cat in errors}
        compacted, serialized, truncated = compact(raw, self.settings.payload_char_budget)
        print(f"[AGG] {instrument.symbol}: {len(categories)} categories, {len(errors)} errors, "
              f"{budget.count} api calls, {budget.cache_hits} cache hits, {len(serialized)} chars")

        return BoundedPayload(
            symbol=instrument.symbol,
            asset_class=resolved.asset_class,
            categories=compacted,
            errors=errors,
            error_kinds=error_kinds,
            serialized=serialized,
            truncated=truncated,
            api_calls=budget.count,
            cache_hits=budget.cache_hits,
        )
