import asyncio
import time

import anthropic
import httpx

from agent.aggregator import Aggregator
from agent.intent_classifier import classify, is_general_query, is_vague
from agent.prompts import build_user_prompt, data_summary, fallback_message, system_prompt
from agent.symbol_resolver import SymbolResolver
from asset_definitions import DEFAULT_SYMBOLS
from config import Settings
from data.chat_history import ConversationStore
from data.fetch_client import MarketDataError
from data.instrument_catalog import InstrumentCatalog
from data.models import BoundedPayload, Instrument, ResolvedQuery

LLM_TIMEOUT = 60.0


def build_llm_client(settings: Settings):
    if not settings.anthropic_api_key:
        return None
    return anthropic.Anthropic(api_key=settings.anthropic_api_key, timeout=120.0)


def failure_kind(exc: BaseException) -> str:
    """network, api or unknown; rate limiting is reported as an api condition."""
    if isinstance(exc, MarketDataError):
        if exc.kind in ("api", "rate_limit"):
            return "api"
        return exc.kind if exc.kind == "network" else "unknown"
    if isinstance(exc, (httpx.TransportError, asyncio.TimeoutError, ConnectionError)):
        return "network"
    return "unknown"


def _payload_failure_kind(payload: BoundedPayload) -> str:
    kinds = set(payload.error_kinds.values())
    if kinds & {"api", "rate_limit"}:
        return "api"
    if "network" in kinds:
        return "network"
    return "unknown"


class MarketAdvisor:
    """One chat turn: resolve, classify, aggregate, answer, record."""

    def __init__(
        self,
        aggregator: Aggregator,
        resolver: SymbolResolver,
        catalog: InstrumentCatalog,
        conversations: ConversationStore,
        settings: Settings | None = None,
        llm=None,
    ):
        self.aggregator = aggregator
        self.resolver = resolver
        self.catalog = catalog
        self.conversations = conversations
        self.settings = settings or Settings()
        self.llm = llm

    def _default_instrument(self, asset_class: str) -> Instrument:
        symbol = DEFAULT_SYMBOLS[asset_class]
        return self.catalog.get(symbol, asset_class) or Instrument(
            symbol=symbol, display_name=symbol, asset_class=asset_class,
        )

    def resolve_query(self, text: str, asset_class: str, history: list[dict],
                      last_symbol: str | None) -> ResolvedQuery:
        intent = classify(text, asset_class)
        instrument, strategy = self.resolver.resolve(text, history, asset_class, last_symbol)

        if (instrument is None
                and self.settings.unresolved_policy == "default_instrument"
                and is_vague(text)):
            instrument = self._default_instrument(asset_class)
            strategy = "default"
            print(f"[ADVISOR] Vague input, defaulting to {instrument.symbol}")

        return ResolvedQuery(
            text=text,
            asset_class=asset_class,
            instrument=instrument,
            intent=intent,
            is_general_query=instrument is None and is_general_query(text, asset_class),
            resolution_strategy=strategy,
        )

    async def _answer(self, resolved: ResolvedQuery, payload: BoundedPayload,
                      prompt: str) -> str:
        summary = data_summary(resolved.instrument.label(), payload.categories)
        if self.llm is None:
            return summary
        start = time.time()
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self.llm.messages.create,
                    model=self.settings.anthropic_model,
                    max_tokens=2048,
                    system=system_prompt(resolved.asset_class),
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=LLM_TIMEOUT,
            )
            text = response.content[0].text
            print(f"[ADVISOR] LLM responded: {len(text)} chars ({time.time()-start:.1f}s)")
            return text
        except asyncio.TimeoutError:
            print(f"[ADVISOR] LLM timed out ({time.time()-start:.1f}s), using data summary")
            return summary
        except Exception as e:
            print(f"[ADVISOR] LLM error: {type(e).__name__}: {e}, using data summary")
            return summary

    def _fallback(self, session_id: str, text: str, asset_class: str, kind: str,
                  detail: str, symbol: str | None = None, strategy: str | None = None) -> dict:
        message = fallback_message(kind, asset_class, detail)
        self.conversations.append(session_id, "user", text, symbol=symbol)
        self.conversations.append(session_id, "assistant", message)
        return {
            "type": "fallback",
            "conversation_id": session_id,
            "message": message,
            "payload": None,
            "symbol": symbol,
            "strategy": strategy,
            "prompt": None,
            "failure": kind,
        }

    async def handle_turn(self, session_id: str | None, text: str, asset_class: str) -> dict:
        conv = self.conversations.get_or_create(session_id)
        sid = conv["id"]
        history = self.conversations.history(sid)
        text = (text or "").strip()

        try:
            await self.catalog.load_all(asset_class)
            resolved = self.resolve_query(text, asset_class, history, conv.get("last_symbol"))
            result = await self.aggregator.aggregate(resolved)
        except Exception as e:
            kind = failure_kind(e)
            print(f"[ADVISOR] Turn failed ({kind}): {type(e).__name__}: {e}")
            return self._fallback(sid, text, asset_class, kind, str(e))

        if not isinstance(result, BoundedPayload):
            self.conversations.append(sid, "user", text)
            self.conversations.append(sid, "assistant", result.message)
            return {
                "type": "clarification",
                "conversation_id": sid,
                "message": result.message,
                "payload": result.model_dump(),
                "symbol": None,
                "strategy": resolved.resolution_strategy,
                "prompt": None,
            }

        symbol = result.symbol
        requested = resolved.intent.categories()
        if requested and all(cat in result.errors for cat in requested):
            kind = _payload_failure_kind(result)
            detail = next(iter(result.errors.values()), "")
            return self._fallback(sid, text, asset_class, kind, detail,
                                  symbol=symbol, strategy=resolved.resolution_strategy)

        prompt = build_user_prompt(text, result.serialized, history)
        message = await self._answer(resolved, result, prompt)

        self.conversations.append(sid, "user", text, symbol=symbol)
        self.conversations.append(sid, "assistant", message, symbol=symbol)
        self.conversations.set_last_symbol(sid, symbol)

        return {
            "type": "data",
            "conversation_id": sid,
            "message": message,
            "payload": result.model_dump(),
            "symbol": symbol,
            "strategy": resolved.resolution_strategy,
            "prompt": prompt,
        }
