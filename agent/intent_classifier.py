"""
Keyword-based intent classification.

Pure functions over the message text: no fetching, no resolution. Keywords
match at the start of a word, so "analyz" catches "analyze" and "analyzing"
while "change" does not fire inside "exchange".
"""
import re

from asset_definitions import (
    COMPREHENSIVE_INDICATORS,
    COMPREHENSIVE_KEYWORDS,
    GENERAL_KEYWORDS,
    INDICATOR_COMPANIONS,
    INDICATOR_SYNONYMS,
    INDICATORS,
    INTELLIGENCE_KEYWORDS,
    QUOTE_KEYWORDS,
    SENTIMENT_KEYWORDS,
    SERIES_KEYWORDS,
)
from data.models import Intent

_SYMBOL_LIKE = re.compile(r"\b[A-Z]{2,6}(?:/[A-Z]{2,6})?\b")


def _has(q: str, keyword: str) -> bool:
    return re.search(r"\b" + re.escape(keyword), q) is not None


def _has_word(q: str, word: str) -> bool:
    return re.search(r"\b" + re.escape(word) + r"\b", q) is not None


def requested_indicators(text: str, asset_class: str = "stock") -> list[str]:
    """Indicators named in the text, in the asset class's canonical order."""
    q = text.lower()
    allowed = INDICATORS.get(asset_class, INDICATORS["stock"])
    found = {name for name in allowed if _has_word(q, name)}
    for spoken, name in INDICATOR_SYNONYMS.items():
        if name in allowed and _has(q, spoken):
            found.add(name)
    return [name for name in allowed if name in found]


def _with_companions(indicators: list[str]) -> list[str]:
    out = []
    for name in indicators:
        if name not in out:
            out.append(name)
        for companion in INDICATOR_COMPANIONS.get(name, []):
            if companion not in out:
                out.append(companion)
    return out


def classify(text: str, asset_class: str = "stock") -> Intent:
    q = (text or "").lower().strip()

    comprehensive = any(_has(q, w) for w in COMPREHENSIVE_KEYWORDS)
    indicators = requested_indicators(q, asset_class)
    if comprehensive:
        bundle = COMPREHENSIVE_INDICATORS.get(asset_class, COMPREHENSIVE_INDICATORS["stock"])
        indicators = indicators + [name for name in bundle if name not in indicators]
    indicators = _with_companions(indicators)

    intent = Intent(
        needs_quote=any(_has(q, w) for w in QUOTE_KEYWORDS) or bool(indicators) or comprehensive,
        needs_series=any(_has(q, w) for w in SERIES_KEYWORDS) or comprehensive,
        indicators=indicators,
        needs_sentiment=any(_has(q, w) for w in SENTIMENT_KEYWORDS) or comprehensive,
        needs_intelligence=any(_has(q, w) for w in INTELLIGENCE_KEYWORDS) or comprehensive,
        needs_comprehensive=comprehensive,
    )

    # A bare instrument question still gets a price.
    if not (intent.needs_quote or intent.needs_series or intent.indicators
            or intent.needs_sentiment or intent.needs_intelligence):
        intent.needs_quote = True
    return intent


def is_general_query(text: str, asset_class: str = "stock") -> bool:
    q = (text or "").lower().strip()
    if not q:
        return True
    keywords = GENERAL_KEYWORDS.get(asset_class, GENERAL_KEYWORDS["stock"])
    return any(_has(q, w) for w in keywords)


def is_vague(text: str) -> bool:
    """Short greeting-like input with nothing that looks like a symbol."""
    stripped = (text or "").strip()
    if len(stripped.split()) > 3:
        return False
    if "analyz" in stripped.lower() or "analys" in stripped.lower():
        return False
    return _SYMBOL_LIKE.search(stripped) is None
