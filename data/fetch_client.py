import asyncio
from typing import Callable

import httpx

from api_budget import ApiCallBudget

HEADERS = {
    "User-Agent": "MarketAdvisor/1.0",
    "Accept": "application/json",
}


class MarketDataError(Exception):
    kind = "unknown"


class RateLimitExceededError(MarketDataError):
    kind = "rate_limit"


class UpstreamError(MarketDataError):
    kind = "api"

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Upstream error {status}: {body}" if body else f"Upstream error {status}")


class FetchFailedError(MarketDataError):
    kind = "network"


def _safe_url(url: str) -> str:
    return url.split("?", 1)[0]


def _body_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
    except ValueError:
        pass
    return resp.text[:300]


def _inband_error(data) -> tuple[int, str] | None:
    """TwelveData reports some failures as a 200 with {"status": "error", ...}."""
    if isinstance(data, dict) and data.get("status") == "error":
        try:
            code = int(data.get("code") or 400)
        except (TypeError, ValueError):
            code = 400
        return code, str(data.get("message") or "unknown error")
    return None


def _is_throttle(code: int, message: str) -> bool:
    msg = message.lower()
    return code == 429 or "credits" in msg or "minute" in msg


class RateLimitedFetchClient:
    """
    GET-and-decode with bounded retries.
    429s, transport failures and undecodable bodies are retried up to
    `max_retries` total attempts; any other non-2xx fails immediately.
    """

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 10.0,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def fetch(self, url: str, params: dict | None = None,
                    budget: ApiCallBudget | None = None,
                    on_attempt: Callable[[], None] | None = None):
        """`on_attempt` runs before every request sent, retries included; it may raise to stop."""
        safe = _safe_url(url)

        if budget is not None and budget.should_throttle():
            print(f"[FETCH] Throttling {safe}: {budget.count} calls this turn, "
                  f"waiting {budget.throttle_delay}s")
            budget.record_throttle()
            await asyncio.sleep(budget.throttle_delay)

        last_reason = "unknown"
        rate_limited = False
        for attempt in range(1, self.max_retries + 1):
            if attempt > 1:
                await asyncio.sleep(self.retry_delay)

            if on_attempt is not None:
                on_attempt()
            try:
                client = await self._get_client()
                resp = await client.get(url, params=params)
            except httpx.TransportError as e:
                rate_limited = False
                last_reason = f"{type(e).__name__}: {e}"
                print(f"[FETCH] {safe} attempt {attempt}/{self.max_retries} failed: {last_reason}")
                continue

            if resp.status_code == 429:
                rate_limited = True
                print(f"[FETCH] {safe} rate limited (429), attempt {attempt}/{self.max_retries}")
                continue

            if not 200 <= resp.status_code < 300:
                message = _body_message(resp)
                print(f"[FETCH] {safe} HTTP {resp.status_code}: {message[:120]}")
                raise UpstreamError(resp.status_code, message)

            try:
                data = resp.json()
            except ValueError:
                rate_limited = False
                last_reason = "response body is not valid JSON"
                print(f"[FETCH] {safe} attempt {attempt}/{self.max_retries}: {last_reason}")
                continue

            inband = _inband_error(data)
            if inband is not None:
                code, message = inband
                if _is_throttle(code, message):
                    rate_limited = True
                    print(f"[FETCH] {safe} throttled in-band: {message[:120]}, "
                          f"attempt {attempt}/{self.max_retries}")
                    continue
                print(f"[FETCH] {safe} API error {code}: {message[:120]}")
                raise UpstreamError(code, message)

            if budget is not None:
                budget.record_call()
            return data

        if rate_limited:
            raise RateLimitExceededError("Rate limit exceeded after maximum retries")
        raise FetchFailedError(f"Fetch failed after {self.max_retries} attempts: {last_reason}")
