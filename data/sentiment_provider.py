from api_budget import ApiCallBudget
from data.fetch_client import RateLimitedFetchClient
from data.models import SentimentResponse


class SentimentProvider:
    """Client for the social sentiment route (`/api/reddit`)."""

    def __init__(self, base_url: str, fetch_client: RateLimitedFetchClient):
        self.base_url = (base_url or "").rstrip("/")
        self.fetch_client = fetch_client

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def get_sentiment(self, symbol: str,
                            budget: ApiCallBudget | None = None) -> SentimentResponse:
        raw = await self.fetch_client.fetch(
            f"{self.base_url}/api/reddit",
            params={"symbol": symbol},
            budget=budget,
        )
        return SentimentResponse.parse(raw)
