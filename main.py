from fastapi import FastAPI, Request, Header, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from pydantic import BaseModel, ConfigDict
from typing import Optional

import asyncio
import os
import traceback
import json as _json
import time as _time
import uuid as _uuid
from datetime import datetime as _dt, timezone as _tz

from agent.advisor import MarketAdvisor, build_llm_client
from agent.aggregator import Aggregator
from agent.symbol_resolver import SymbolResolver
from api_budget import DailyCreditTracker
from asset_definitions import ASSET_CLASSES
from config import AGENT_API_KEY, load_settings
from data.cache import CacheStore
from data.chat_history import ConversationStore
from data.fetch_client import RateLimitedFetchClient
from data.instrument_catalog import InstrumentCatalog
from data.intelligence_provider import IntelligenceProvider
from data.sentiment_provider import SentimentProvider
from data.twelvedata_provider import TwelveDataProvider

QUERY_TIMEOUT = 150.0

app = FastAPI(title="Market Advisor API")

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    print(f"[VALIDATION_ERROR] path={request.url.path} method={request.method}")
    print(f"[VALIDATION_ERROR] errors={exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "detail": _json.loads(_json.dumps(exc.errors(), default=str)),
            "message": "Request validation failed. Check field names and types.",
            "request_id": str(_uuid.uuid4()),
            "as_of": _dt.now(_tz.utc).isoformat(),
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_services(settings=None) -> dict:
    """Wire the process-lifetime objects. Nothing here touches the network."""
    settings = settings or load_settings()
    cache = CacheStore()
    credits = DailyCreditTracker({"twelvedata": settings.daily_credits})
    fetch_client = RateLimitedFetchClient(
        max_retries=settings.fetch_max_retries,
        retry_delay=settings.fetch_retry_delay,
        timeout=settings.fetch_timeout,
    )
    provider = TwelveDataProvider(
        settings.twelvedata_api_key, fetch_client,
        base_url=settings.twelvedata_base_url, credit_tracker=credits,
    )
    catalog = InstrumentCatalog(provider, cache)
    aggregator = Aggregator(
        provider, catalog, cache,
        sentiment=SentimentProvider(settings.sentiment_base_url, fetch_client),
        intelligence=IntelligenceProvider(settings.intelligence_base_url, fetch_client),
        settings=settings,
    )
    conversations = ConversationStore()
    advisor = MarketAdvisor(
        aggregator, SymbolResolver(catalog), catalog, conversations,
        settings=settings, llm=build_llm_client(settings),
    )
    return {
        "settings": settings,
        "cache": cache,
        "credits": credits,
        "fetch_client": fetch_client,
        "catalog": catalog,
        "conversations": conversations,
        "advisor": advisor,
    }


services = build_services()


@app.on_event("shutdown")
async def shutdown_event():
    await services["fetch_client"].close()


# ============================================================
# API Routes
# ============================================================


@app.get("/")
async def root():
    """Liveness check."""
    return {"status": "running", "message": "Market Advisor API is live"}


@app.get("/ping")
async def ping():
    return {"status": "ok"}


@app.get("/health")
async def health():
    catalog = services["catalog"]
    catalogs = {}
    for asset_class in ASSET_CLASSES:
        if asset_class in catalog.unavailable:
            catalogs[asset_class] = "unavailable"
        elif catalog.is_available(asset_class):
            catalogs[asset_class] = "loaded"
        else:
            catalogs[asset_class] = "not_loaded"
    return {
        "status": "ok",
        "cache": services["cache"].stats(),
        "credits": services["credits"].status(),
        "catalogs": catalogs,
        "llm_configured": services["advisor"].llm is not None,
    }


def _check_api_key(api_key: Optional[str]) -> bool:
    return not AGENT_API_KEY or api_key == AGENT_API_KEY


class QueryRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    query: Optional[str] = None
    prompt: Optional[str] = None
    conversation_id: Optional[str] = None
    asset_class: str = "stock"


class CreateConversationRequest(BaseModel):
    conversation_id: Optional[str] = None


def _build_meta(req_id: str, conv_id=None, asset_class=None, timing_ms=None):
    return {
        "request_id": req_id,
        "conversation_id": conv_id,
        "asset_class": asset_class,
        "timing_ms": timing_ms or {"total": 0},
    }


def _ok_envelope(result: dict, meta: dict) -> dict:
    return {
        "type": "ok",
        "result": result,
        "meta": meta,
        "error": None,
        "conversation_id": meta.get("conversation_id"),
        "request_id": meta.get("request_id"),
        "as_of": _dt.now(_tz.utc).isoformat(),
    }


def _error_envelope(code: str, message: str, meta: dict, details=None) -> dict:
    return {
        "type": "error",
        "result": None,
        "meta": meta,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "conversation_id": meta.get("conversation_id"),
        "request_id": meta.get("request_id"),
        "as_of": _dt.now(_tz.utc).isoformat(),
    }


def _resp_log(req_id: str, status: int, resp_type: str, resp: dict):
    resp_bytes = len(_json.dumps(resp, default=str).encode("utf-8"))
    print(f"[RESP] id={req_id} status={status} type={resp_type} bytes={resp_bytes}")


def _fail(status: int, code: str, message: str, meta: dict, t0: float | None = None) -> JSONResponse:
    if t0 is not None:
        meta["timing_ms"]["total"] = int((_time.time() - t0) * 1000)
    resp = _error_envelope(code, message, meta)
    _resp_log(meta["request_id"], status, "error", resp)
    return JSONResponse(status_code=status, content=resp)


@app.post("/api/query")
@limiter.limit("10/minute")
async def query_advisor(
    request: Request,
    body: QueryRequest,
    api_key: str = Header(None, alias="X-API-Key"),
):
    t0 = _time.time()
    req_id = str(_uuid.uuid4())
    user_query = (body.query or body.prompt or "").strip()
    asset_class = (body.asset_class or "stock").lower()
    print(f"[REQ] id={req_id} query_len={len(user_query)} asset_class={asset_class} conversation_id={body.conversation_id}")

    meta = _build_meta(req_id, conv_id=body.conversation_id, asset_class=asset_class)

    if not _check_api_key(api_key):
        return _fail(403, "AUTH_FAILED", "Invalid or missing API key.", meta)
    if asset_class not in ASSET_CLASSES:
        return _fail(
            400, "UNKNOWN_ASSET_CLASS",
            f"Unknown asset class '{body.asset_class}'. Use one of: {', '.join(ASSET_CLASSES)}.",
            meta,
        )
    if not user_query:
        return _fail(400, "NO_QUERY", "No query provided.", meta)

    try:
        result = await asyncio.wait_for(
            services["advisor"].handle_turn(body.conversation_id, user_query, asset_class),
            timeout=QUERY_TIMEOUT,
        )
    except asyncio.TimeoutError:
        print(f"[API] request_id={req_id} status=timeout after {QUERY_TIMEOUT:g}s")
        # Timeouts stay HTTP 200 with an error envelope.
        return _fail(
            200, "REQUEST_TIMEOUT",
            "Request timed out. Market data may be rate-limited, please wait a minute and try again.",
            meta, t0,
        )
    except ValueError as e:
        return _fail(400, "BAD_REQUEST", str(e), meta, t0)
    except Exception as e:
        print(f"[API] request_id={req_id} status=error error={type(e).__name__}: {e}")
        traceback.print_exc()
        return _fail(500, "UNHANDLED_EXCEPTION", "Something went wrong while handling your request.", meta, t0)

    meta["conversation_id"] = result.get("conversation_id")
    meta["timing_ms"]["total"] = int((_time.time() - t0) * 1000)
    print(f"[API] request_id={req_id} type={result.get('type')} symbol={result.get('symbol')} strategy={result.get('strategy')}")
    resp = _ok_envelope(result, meta)
    _resp_log(req_id, 200, "ok", resp)
    return JSONResponse(content=_json.loads(_json.dumps(resp, default=str)))


@app.get("/api/instruments/{asset_class}")
@limiter.limit("30/minute")
async def list_instruments(request: Request, asset_class: str, q: Optional[str] = None, limit: int = 5):
    asset_class = asset_class.lower()
    if asset_class not in ASSET_CLASSES:
        raise HTTPException(status_code=400, detail=f"Unknown asset class '{asset_class}'")
    catalog = services["catalog"]
    await catalog.load_all(asset_class)
    if q:
        instruments = catalog.suggest(q, asset_class, limit=max(1, min(limit, 50)))
    else:
        instruments = catalog.popular(asset_class)
    return {
        "asset_class": asset_class,
        "available": catalog.is_available(asset_class),
        "instruments": [i.model_dump() for i in instruments],
    }


@app.post("/api/cache/clear")
@limiter.limit("5/minute")
async def clear_cache(request: Request, api_key: str = Header(None, alias="X-API-Key")):
    if not _check_api_key(api_key):
        raise HTTPException(status_code=403, detail="Invalid API key")
    services["cache"].clear()
    return {"status": "Cache cleared"}


@app.get("/api/conversations")
@limiter.limit("30/minute")
async def get_conversations(request: Request):
    return {"conversations": services["conversations"].list()}


@app.get("/api/conversations/{conv_id}")
@limiter.limit("30/minute")
async def get_conversation_detail(request: Request, conv_id: str):
    conv = services["conversations"].get(conv_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conv


@app.post("/api/conversations")
@limiter.limit("30/minute")
async def create_new_conversation(request: Request, body: CreateConversationRequest):
    try:
        return services["conversations"].create(body.conversation_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.delete("/api/conversations/{conv_id}")
@limiter.limit("30/minute")
async def delete_conv(request: Request, conv_id: str):
    success = services["conversations"].delete(conv_id)
    return {"success": success}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
