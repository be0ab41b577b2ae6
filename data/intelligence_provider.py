from api_budget import ApiCallBudget
from data.fetch_client import RateLimitedFetchClient, UpstreamError
from data.models import IntelligenceResponse


class IntelligenceProvider:
    def __init__(self, base_url: str, fetch_client: RateLimitedFetchClient):
        self.base_url = (base_url or "").rstrip("/")
        self.fetch_client = fetch_client

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def _get(self, symbol: str, report_type: str,
                   budget: ApiCallBudget | None) -> IntelligenceResponse:
        raw = await self.fetch_client.fetch(
            f"{self.base_url}/api/market-intelligence",
            params={"symbol": symbol, "type": report_type},
            budget=budget,
        )
        parsed = IntelligenceResponse.parse(raw)
        if parsed.error:
            raise UpstreamError(200, parsed.error)
        return parsed

    async def get_comprehensive(self, symbol: str,
                                budget: ApiCallBudget | None = None) -> IntelligenceResponse:
        return await self._get(symbol, "comprehensive", budget)

    async def get_alerts(self, symbol: str,
                         budget: ApiCallBudget | None = None) -> IntelligenceResponse:
        return await self._get(symbol, "alerts", budget)
