"""
Known tradable instruments per asset class.

Listings are loaded once from TwelveData, cached for a day, and indexed by
symbol. If a listing cannot be loaded the asset class is marked unavailable
for a few minutes before the next attempt:
validation then answers None ("unknown") and callers carry on unvalidated.
"""
import re

from rapidfuzz.distance import Levenshtein

from asset_definitions import CORPORATE_SUFFIXES, POPULAR_INSTRUMENTS, STOCK_EXCHANGES
from data.cache import CATALOG_RETRY_TTL, CATALOG_TTL, CacheStore
from data.fetch_client import MarketDataError
from data.models import Instrument
from data.twelvedata_provider import TwelveDataProvider

FUZZY_THRESHOLD = 3


def _norm(symbol: str) -> str:
    return symbol.replace("/", "").upper()


def _words(text: str) -> list[str]:
    return re.findall(r"[a-z0-9]+", text.lower())


def _core_words(display_name: str) -> list[str]:
    """Display name words without trailing legal-form words ("Apple Inc" -> ["apple"])."""
    words = _words(display_name)
    while len(words) > 1 and words[-1] in CORPORATE_SUFFIXES:
        words.pop()
    return words


class InstrumentCatalog:
    def __init__(self, provider: TwelveDataProvider, cache: CacheStore):
        self.provider = provider
        self.cache = cache
        self._index: dict[str, dict[str, Instrument]] = {}
        self.unavailable: set[str] = set()

    async def _fetch_rows(self, asset_class: str) -> list[Instrument]:
        if asset_class == "stock":
            merged: dict[str, Instrument] = {}
            errors = []
            for exchange in STOCK_EXCHANGES:
                try:
                    rows = await self.provider.list_stocks(exchange)
                except MarketDataError as e:
                    print(f"[CATALOG] {exchange} listing failed: {e}")
                    errors.append(e)
                    continue
                for row in rows:
                    inst = Instrument.from_stock_row(row)
                    if inst and inst.symbol not in merged:
                        merged[inst.symbol] = inst
            if not merged and errors:
                raise errors[0]
            return list(merged.values())

        if asset_class == "forex":
            rows = await self.provider.list_forex_pairs()
            parsed = [Instrument.from_forex_row(r) for r in rows]
        elif asset_class == "crypto":
            rows = await self.provider.list_cryptocurrencies()
            parsed = [Instrument.from_crypto_row(r) for r in rows]
        else:
            raise ValueError(f"Unknown asset class: {asset_class}")

        seen: dict[str, Instrument] = {}
        for inst in parsed:
            if inst and inst.symbol not in seen:
                seen[inst.symbol] = inst
        return list(seen.values())

    def install(self, asset_class: str, instruments: list[Instrument]):
        """Replace the in-memory index for an asset class."""
        self._index[asset_class] = {i.symbol: i for i in instruments}
        if instruments:
            self.unavailable.discard(asset_class)

    def _mark_failed(self, asset_class: str, reason: str):
        self.unavailable.add(asset_class)
        self._index.pop(asset_class, None)
        self.cache.set(f"CATALOG_FAILED:{asset_class.upper()}", reason)

    async def load_all(self, asset_class: str) -> list[Instrument]:
        key = f"CATALOG:{asset_class.upper()}"
        cached = self.cache.get(key, CATALOG_TTL)
        if cached is not None:
            if asset_class not in self._index:
                self.install(asset_class, cached)
            return cached

        failed = self.cache.get(f"CATALOG_FAILED:{asset_class.upper()}", CATALOG_RETRY_TTL)
        if failed is not None:
            self.unavailable.add(asset_class)
            print(f"[CATALOG] {asset_class} catalog unavailable ({failed}), not retrying yet")
            return []

        try:
            instruments = await self._fetch_rows(asset_class)
        except MarketDataError as e:
            print(f"[CATALOG] Failed to load {asset_class} catalog: {e}")
            self._mark_failed(asset_class, type(e).__name__)
            return []

        if not instruments:
            print(f"[CATALOG] {asset_class} catalog came back empty")
            self._mark_failed(asset_class, "empty listing")
            return []

        self.unavailable.discard(asset_class)
        self.install(asset_class, instruments)
        self.cache.set(key, instruments)
        print(f"[CATALOG] Loaded {len(instruments)} {asset_class} instruments")
        return instruments

    def is_available(self, asset_class: str) -> bool:
        return asset_class not in self.unavailable and bool(self._index.get(asset_class))

    def instruments(self, asset_class: str) -> list[Instrument]:
        return list(self._index.get(asset_class, {}).values())

    def validate(self, symbol: str, asset_class: str) -> bool | None:
        if not self.is_available(asset_class):
            return None
        return symbol.upper() in self._index[asset_class]

    def get(self, symbol: str, asset_class: str) -> Instrument | None:
        return self._index.get(asset_class, {}).get(symbol.upper())

    def closest_symbol(self, candidate: str, asset_class: str,
                       max_distance: int = 2) -> Instrument | None:
        """Nearest symbol by edit distance, ignoring the pair slash."""
        target = _norm(candidate)
        best = None
        best_dist = max_distance + 1
        for inst in self.instruments(asset_class):
            dist = Levenshtein.distance(target, _norm(inst.symbol), score_cutoff=max_distance)
            if dist < best_dist:
                best, best_dist = inst, dist
                if dist == 0:
                    break
        return best

    def closest_name(self, text: str, asset_class: str,
                     max_distance: int = FUZZY_THRESHOLD) -> Instrument | None:
        """Nearest display name by edit distance.

        Compared against the whole name and the name without its legal-form
        suffix. Short inputs get a tighter bound (at most a third of their length).
        """
        text = " ".join(_words(text))
        bound = min(max_distance, len(text) // 3)
        if bound < 1:
            return None
        best = None
        best_dist = bound + 1
        for inst in self.instruments(asset_class):
            full = _words(inst.display_name)
            for name in {" ".join(full), " ".join(_core_words(inst.display_name))}:
                dist = Levenshtein.distance(text, name, score_cutoff=bound)
                if dist < best_dist:
                    best, best_dist = inst, dist
        return best

    def find_by_name(self, fragment: str, asset_class: str,
                     max_matches: int | None = None) -> Instrument | None:
        """Instrument whose display name starts with the words of `fragment`.

        Matching is on whole words, so "holding" does not hit "... Holdings Inc".
        With `max_matches`, a fragment naming more instruments than that is
        treated as too generic and matches nothing. Shortest symbol wins.
        """
        wanted = _words(fragment)
        if not wanted:
            return None
        matches = [
            i for i in self.instruments(asset_class)
            if _words(i.display_name)[:len(wanted)] == wanted
        ]
        if not matches:
            return None
        if max_matches is not None and len(matches) > max_matches:
            print(f"[CATALOG] '{fragment}' matches {len(matches)} {asset_class} names, ignoring")
            return None
        return min(matches, key=lambda i: (len(i.symbol), i.symbol))

    def suggest(self, partial: str, asset_class: str, limit: int = 5) -> list[Instrument]:
        query = (partial or "").strip()
        if not query:
            return self.popular(asset_class)[:limit]

        q_sym = _norm(query)
        q_name = query.lower()
        contained = []
        fuzzy = []
        for inst in self.instruments(asset_class):
            if q_sym in _norm(inst.symbol) or q_name in inst.display_name.lower():
                contained.append(inst)
                continue
            dist = Levenshtein.distance(q_sym, _norm(inst.symbol), score_cutoff=FUZZY_THRESHOLD)
            if dist <= FUZZY_THRESHOLD:
                fuzzy.append((dist, inst))

        contained.sort(key=lambda i: (len(i.symbol), i.symbol))
        fuzzy.sort(key=lambda pair: (pair[0], len(pair[1].symbol), pair[1].symbol))
        ranked = contained + [inst for _, inst in fuzzy]
        return ranked[:limit]

    def popular(self, asset_class: str) -> list[Instrument]:
        return [
            self.get(symbol, asset_class)
            or Instrument(symbol=symbol, display_name=name, asset_class=asset_class)
            for symbol, name in POPULAR_INSTRUMENTS.get(asset_class, [])
        ]
