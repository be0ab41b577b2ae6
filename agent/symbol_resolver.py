"""
Free text -> one concrete instrument.

Strategies run in a fixed order and the first hit wins:
  pattern        canonical symbol forms (AAPL, EUR/USD, BTC/USD)
  alias          nicknames and common names ("cable", "bitcoin", "apple")
  currency_pair  two currencies named in the text (forex only)
  name           descriptive company/asset name against catalog display names
  history        the session's last symbol, then earlier messages
Resolution never fetches: the catalog must already be loaded.
"""
import re

from asset_definitions import (
    ALIASES,
    BOILERPLATE_WORDS,
    COMPREHENSIVE_KEYWORDS,
    CURRENCY_CODES,
    CURRENCY_NAMES,
    GENERAL_KEYWORDS,
    INDICATOR_SYNONYMS,
    INDICATORS,
    INTELLIGENCE_KEYWORDS,
    MAJOR_CURRENCY_CODES,
    QUOTE_KEYWORDS,
    SENTIMENT_KEYWORDS,
    SERIES_KEYWORDS,
    STOCK_STOPWORDS,
)
from data.instrument_catalog import FUZZY_THRESHOLD, InstrumentCatalog
from data.models import Instrument

SYMBOL_FUZZY_THRESHOLD = 2
MIN_NAME_LENGTH = 5
MAX_WORD_MATCHES = 3

_STOCK_PATTERN = re.compile(r"\b[A-Z]{1,5}\b")
_FOREX_PATTERN = re.compile(r"\b[A-Z]{3}/[A-Z]{3}\b")
_FOREX_SLASHLESS = re.compile(r"\b([A-Z]{3})([A-Z]{3})\b")
_CRYPTO_PATTERN = re.compile(r"\b[A-Z]{2,6}/[A-Z]{2,6}\b")
_WORD = re.compile(r"[a-z0-9][a-z0-9&.'-]*")

_INDICATOR_WORDS = {
    name for names in INDICATORS.values() for name in names
} | {word for spoken in INDICATOR_SYNONYMS for word in spoken.split()} | {"indicator", "indicators"}

_INTENT_PREFIXES = (
    QUOTE_KEYWORDS + SERIES_KEYWORDS + COMPREHENSIVE_KEYWORDS
    + SENTIMENT_KEYWORDS + INTELLIGENCE_KEYWORDS
    + [w for words in GENERAL_KEYWORDS.values() for w in words]
)
_INTENT_PREFIXES = tuple(p for p in _INTENT_PREFIXES if " " not in p)
_INFLECTIONS = {
    "", "s", "es", "e", "ed", "ing", "er", "ers", "or", "ors", "is", "al",
    "ment", "ments", "ly", "ish", "ic", "ics", "ive", "ion", "ions",
}

_ALIASES_BY_LENGTH = {
    asset_class: sorted(table.items(), key=lambda kv: len(kv[0]), reverse=True)
    for asset_class, table in ALIASES.items()
}
_CURRENCY_NAMES_BY_LENGTH = sorted(CURRENCY_NAMES.items(), key=lambda kv: len(kv[0]), reverse=True)


def pattern_candidates(text: str, asset_class: str) -> list[str]:
    """Canonical-looking symbols in the text, left to right."""
    if asset_class == "stock":
        return [t for t in _STOCK_PATTERN.findall(text) if t not in STOCK_STOPWORDS]

    upper = text.upper()
    if asset_class == "forex":
        found = []
        for m in sorted(
            list(_FOREX_PATTERN.finditer(upper)) + list(_FOREX_SLASHLESS.finditer(text)),
            key=lambda m: m.start(),
        ):
            if "/" in m.group(0):
                symbol = m.group(0)
            elif m.group(1) in CURRENCY_CODES and m.group(2) in CURRENCY_CODES:
                symbol = f"{m.group(1)}/{m.group(2)}"
            else:
                continue
            if symbol not in found:
                found.append(symbol)
        return found

    if asset_class == "crypto":
        return list(dict.fromkeys(_CRYPTO_PATTERN.findall(upper)))
    return []


def _descriptive_words(text: str) -> list[str]:
    words = []
    for w in _WORD.findall(text.lower()):
        w = w.strip(".'-")
        if not w or w in BOILERPLATE_WORDS or w in _INDICATOR_WORDS:
            continue
        if w.upper() in STOCK_STOPWORDS:
            continue
        if any(w.startswith(p) and w[len(p):] in _INFLECTIONS for p in _INTENT_PREFIXES):
            continue
        words.append(w)
    return words


def suggestion_hint(text: str, asset_class: str) -> str:
    """Best fragment of unresolved text to feed the catalog's suggestion search."""
    candidates = pattern_candidates(text or "", asset_class)
    if candidates:
        return candidates[0]
    words = _descriptive_words(text or "")
    return max(words, key=len) if words else ""


class SymbolResolver:
    def __init__(self, catalog: InstrumentCatalog):
        self.catalog = catalog

    def _instrument(self, symbol: str, asset_class: str) -> Instrument:
        return self.catalog.get(symbol, asset_class) or Instrument(
            symbol=symbol.upper(), display_name=symbol.upper(), asset_class=asset_class,
        )

    def _by_pattern(self, text: str, asset_class: str) -> Instrument | None:
        candidates = pattern_candidates(text, asset_class)
        if not candidates:
            return None

        if not self.catalog.is_available(asset_class):
            return self._instrument(candidates[0], asset_class)

        for c in candidates:
            if self.catalog.validate(c, asset_class):
                return self.catalog.get(c, asset_class)

        for c in candidates:
            if len(c.replace("/", "")) < 3:
                continue
            match = self.catalog.closest_symbol(c, asset_class, SYMBOL_FUZZY_THRESHOLD)
            if match is not None:
                print(f"[RESOLVER] Fuzzy symbol {c} -> {match.symbol}")
                return match
        return None

    def _by_alias(self, text: str, asset_class: str) -> Instrument | None:
        q = text.lower()
        for alias, symbol in _ALIASES_BY_LENGTH.get(asset_class, []):
            if re.search(r"(?<![a-z0-9])" + re.escape(alias) + r"(?![a-z0-9])", q):
                return self._instrument(symbol, asset_class)
        return None

    def _currencies_in(self, text: str) -> list[str]:
        q = text.lower()
        found: list[tuple[int, str]] = []
        for name, code in _CURRENCY_NAMES_BY_LENGTH:
            for m in re.finditer(r"\b" + re.escape(name) + r"\b", q):
                found.append((m.start(), code))
                q = q[:m.start()] + " " * (m.end() - m.start()) + q[m.end():]

        for m in re.finditer(r"\b[A-Za-z]{3}\b", text):
            if q[m.start()] == " ":
                continue
            token = m.group(0)
            if token.isupper() and token in CURRENCY_CODES:
                found.append((m.start(), token))
            elif token.upper() in MAJOR_CURRENCY_CODES:
                found.append((m.start(), token.upper()))

        codes = []
        for _, code in sorted(found):
            if code not in codes:
                codes.append(code)
        return codes

    def _by_currency_pair(self, text: str, asset_class: str) -> Instrument | None:
        if asset_class != "forex":
            return None
        codes = self._currencies_in(text)
        if len(codes) != 2:
            return None
        a, b = codes
        if not self.catalog.is_available(asset_class):
            return self._instrument(f"{a}/{b}", asset_class)
        for symbol in (f"{a}/{b}", f"{b}/{a}"):
            if self.catalog.validate(symbol, asset_class):
                return self.catalog.get(symbol, asset_class)
        return None

    def _by_name(self, text: str, asset_class: str) -> Instrument | None:
        words = _descriptive_words(text)
        if not words:
            return None
        phrase = " ".join(words)
        candidates = [(phrase, MAX_WORD_MATCHES if len(words) == 1 else None)] + [
            (w, MAX_WORD_MATCHES) for w in sorted(dict.fromkeys(words), key=len, reverse=True)
            if w != phrase
        ]
        for fragment, max_matches in candidates:
            if len(fragment) < MIN_NAME_LENGTH:
                continue
            match = self.catalog.find_by_name(fragment, asset_class, max_matches)
            if match is None:
                match = self.catalog.closest_name(fragment, asset_class, FUZZY_THRESHOLD)
            if match is not None:
                return match
        return None

    def _by_history(self, history: list[dict], asset_class: str,
                    last_symbol: str | None) -> Instrument | None:
        if last_symbol:
            return self._instrument(last_symbol, asset_class)
        for msg in reversed(history or []):
            if msg.get("symbol"):
                return self._instrument(msg["symbol"], asset_class)
            # Data turns tag the assistant reply with `symbol` (checked above); untagged
            # assistant text can list example symbols, so only the user's words are scanned.
            if msg.get("role") != "user":
                continue
            content = msg.get("content") or ""
            inst = self._by_pattern(content, asset_class) or self._by_alias(content, asset_class)
            if inst is not None:
                return inst
        return None

    def resolve(self, text: str, history: list[dict] | None, asset_class: str,
                last_symbol: str | None = None) -> tuple[Instrument | None, str | None]:
        text = text or ""
        strategies = [
            ("pattern", lambda: self._by_pattern(text, asset_class)),
            ("alias", lambda: self._by_alias(text, asset_class)),
            ("currency_pair", lambda: self._by_currency_pair(text, asset_class)),
            ("name", lambda: self._by_name(text, asset_class)),
            ("history", lambda: self._by_history(history or [], asset_class, last_symbol)),
        ]
        for name, strategy in strategies:
            inst = strategy()
            if inst is not None:
                print(f"[RESOLVER] {asset_class} '{text[:60]}' -> {inst.symbol} via {name}")
                return inst, name
        print(f"[RESOLVER] {asset_class} '{text[:60]}' -> unresolved")
        return None, None
