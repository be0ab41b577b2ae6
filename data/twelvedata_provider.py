from api_budget import ApiCallBudget, DailyCreditTracker
from asset_definitions import INDICATOR_PARAMS
from data.fetch_client import RateLimitedFetchClient, RateLimitExceededError
from data.models import IndicatorResponse, QuoteResponse, SeriesResponse


class TwelveDataProvider:
    def __init__(
        self,
        api_key: str,
        fetch_client: RateLimitedFetchClient,
        base_url: str = "https://api.twelvedata.com",
        credit_tracker: DailyCreditTracker | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.fetch_client = fetch_client
        self.credit_tracker = credit_tracker

    def url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _charge_credit(self):
        if self.credit_tracker is not None and not self.credit_tracker.spend("twelvedata"):
            raise RateLimitExceededError("Daily TwelveData credit limit reached")

    async def _get(self, endpoint: str, params: dict | None = None,
                   budget: ApiCallBudget | None = None):
        if self.credit_tracker is not None and not self.credit_tracker.can_spend("twelvedata"):
            raise RateLimitExceededError("Daily TwelveData credit limit reached")
        query = dict(params or {})
        query["apikey"] = self.api_key
        # Every attempt, retried ones included, costs an upstream credit.
        return await self.fetch_client.fetch(
            self.url(endpoint), params=query, budget=budget, on_attempt=self._charge_credit,
        )

    async def get_quote(self, symbol: str, budget: ApiCallBudget | None = None) -> QuoteResponse:
        raw = await self._get("quote", {"symbol": symbol}, budget)
        return QuoteResponse.parse(raw)

    async def get_time_series(self, symbol: str, outputsize: int = 30,
                              budget: ApiCallBudget | None = None) -> SeriesResponse:
        raw = await self._get(
            "time_series",
            {"symbol": symbol, "interval": "1day", "outputsize": str(outputsize)},
            budget,
        )
        return SeriesResponse.parse(raw)

    async def get_indicator(self, name: str, symbol: str, outputsize: int = 30,
                            budget: ApiCallBudget | None = None) -> IndicatorResponse:
        """`ema_50` is the EMA endpoint at period 50; every other name is its own endpoint."""
        endpoint = "ema" if name == "ema_50" else name
        params = {"symbol": symbol, "interval": "1day", "outputsize": str(outputsize)}
        params.update(INDICATOR_PARAMS.get(name, {}))
        raw = await self._get(endpoint, params, budget)
        return IndicatorResponse.parse(raw, name)

    async def list_stocks(self, exchange: str) -> list[dict]:
        raw = await self._get("stocks", {"exchange": exchange})
        return _rows(raw)

    async def list_forex_pairs(self) -> list[dict]:
        return _rows(await self._get("forex_pairs"))

    async def list_cryptocurrencies(self) -> list[dict]:
        return _rows(await self._get("cryptocurrencies"))


def _rows(raw) -> list[dict]:
    if isinstance(raw, dict):
        raw = raw.get("data")
    if not isinstance(raw, list):
        return []
    return [r for r in raw if isinstance(r, dict)]
