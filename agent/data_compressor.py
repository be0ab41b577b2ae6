import json

from pydantic import BaseModel

from data.models import (
    IndicatorResponse,
    IntelligenceResponse,
    QuoteResponse,
    SentimentResponse,
    SeriesResponse,
)

MAX_TOTAL_CHARS = 2000
MAX_SERIES_POINTS = 5
MAX_ALERTS = 5
MAX_ANALYSIS_LENGTH = 1000

TRUNCATION_MARKER = "... (data truncated)"
ANALYSIS_MARKER = "... (analysis truncated)"

QUOTE_KEEP_FIELDS = ("symbol", "name", "price", "change", "change_percent", "volume")
SENTIMENT_KEEP_FIELDS = (
    "bullish_percentage", "bearish_percentage", "total_posts",
    "overall_sentiment", "confidence",
)


def _pick(obj: BaseModel, fields) -> dict:
    out = {}
    for f in fields:
        v = getattr(obj, f, None)
        if v is not None:
            out[f] = v
    return out


def _drop_none(obj):
    if isinstance(obj, dict):
        return {k: _drop_none(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [_drop_none(v) for v in obj if v is not None]
    return obj


def _compress_series(series: SeriesResponse) -> dict:
    out = {}
    if series.interval:
        out["interval"] = series.interval
    out["values"] = [
        p.model_dump(exclude_none=True) for p in series.values[:MAX_SERIES_POINTS]
    ]
    return out


def _compress_indicator(ind: IndicatorResponse) -> dict:
    if not ind.values:
        return {}
    return _drop_none(dict(ind.values[0]))


def _compress_intelligence(intel: IntelligenceResponse) -> dict:
    out = {}
    if intel.analysis:
        analysis = intel.analysis
        if len(analysis) > MAX_ANALYSIS_LENGTH:
            analysis = analysis[:MAX_ANALYSIS_LENGTH] + ANALYSIS_MARKER
        out["analysis"] = analysis
    if intel.alerts:
        out["alerts"] = _drop_none(intel.alerts[:MAX_ALERTS])
    return out


def compress_category(value):
    """Allow-listed, None-free view of one category result."""
    if isinstance(value, dict) and "error" in value:
        return {"error": str(value["error"])}
    if isinstance(value, QuoteResponse):
        return _pick(value, QUOTE_KEEP_FIELDS)
    if isinstance(value, SeriesResponse):
        return _compress_series(value)
    if isinstance(value, IndicatorResponse):
        return _compress_indicator(value)
    if isinstance(value, SentimentResponse):
        return _pick(value, SENTIMENT_KEEP_FIELDS)
    if isinstance(value, IntelligenceResponse):
        return _compress_intelligence(value)
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_none=True)
    return _drop_none(value)


def serialize(data) -> str:
    return json.dumps(data, separators=(",", ":"), default=str)


def truncate_serialized(text: str, max_chars: int = MAX_TOTAL_CHARS) -> tuple[str, bool]:
    """Cut `text` to `max_chars`, ending in TRUNCATION_MARKER.

    A limit no longer than the marker yields just a prefix of the marker;
    Settings keeps the configured budget above that.
    """
    if len(text) <= max_chars:
        return text, False
    if max_chars <= len(TRUNCATION_MARKER):
        return TRUNCATION_MARKER[:max_chars], True
    return text[:max_chars - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER, True


def compact(categories: dict, max_chars: int = MAX_TOTAL_CHARS) -> tuple[dict, str, bool]:
    """
    Strip every category down to its allow-listed fields, then bound the
    serialized form to `max_chars`.

    Returns (compacted dict, serialized string, truncated flag). The string is
    never longer than `max_chars` and ends with TRUNCATION_MARKER when cut.
    """
    compressed = {}
    for key, value in (categories or {}).items():
        compressed[key] = compress_category(value)

    text, truncated = truncate_serialized(serialize(compressed), max_chars)
    if truncated:
        print(f"[COMPRESS] Payload cut to {max_chars} chars")
    return compressed, text, truncated
