"""
Upstream call budgets.

ApiCallBudget is created fresh for every user turn: once more than `threshold`
calls have been made in the turn, each further call waits `throttle_delay`
seconds before it is sent, keeping bursts under the upstream per-minute ceiling.

DailyCreditTracker counts calls per provider per UTC day.
Logs warnings at 70% and hard-stops at 90% to preserve headroom.
"""
from datetime import datetime, timezone


class ApiCallBudget:
    def __init__(self, threshold: int = 4, throttle_delay: float = 7.5):
        self.threshold = threshold
        self.throttle_delay = throttle_delay
        self.count = 0
        self.throttled = 0
        self.cache_hits = 0

    def should_throttle(self) -> bool:
        return self.count > self.threshold

    def record_call(self):
        self.count += 1

    def record_throttle(self):
        self.throttled += 1

    def record_cache_hit(self):
        self.cache_hits += 1

    def summary(self) -> dict:
        return {
            "api_calls": self.count,
            "throttled_calls": self.throttled,
            "cache_hits": self.cache_hits,
            "threshold": self.threshold,
        }


class DailyCreditTracker:
    WARN_PCT = 0.70
    HARD_STOP_PCT = 0.90

    def __init__(self, limits: dict[str, int] | None = None):
        self.limits = dict(limits or {"twelvedata": 800})
        self._used: dict[str, int] = {}
        self._day = ""
        self._roll_day()

    def _roll_day(self):
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        if today != self._day:
            if self._day:
                print(f"[BUDGET] New UTC day {today}, credit counters reset")
            self._day = today
            self._used = dict.fromkeys(self.limits, 0)

    def _fits(self, provider: str, n: int) -> bool:
        return self._used[provider] + n <= self.limits[provider] * self.HARD_STOP_PCT

    def spend(self, provider: str, n: int = 1) -> bool:
        """Record `n` calls; False (nothing recorded) once the hard stop would be crossed."""
        self._roll_day()
        provider = provider.lower()
        if provider not in self.limits:
            return True

        limit = self.limits[provider]
        if not self._fits(provider, n):
            used = self._used[provider]
            print(f"[BUDGET] HARD STOP: {provider} at {used}/{limit} "
                  f"({used / limit:.0%}), refusing {n} calls")
            return False

        self._used[provider] += n
        used = self._used[provider]
        if used > limit * self.WARN_PCT:
            print(f"[BUDGET] WARNING: {provider} at {used}/{limit} ({used / limit:.0%})")
        return True

    def can_spend(self, provider: str, n: int = 1) -> bool:
        self._roll_day()
        provider = provider.lower()
        return provider not in self.limits or self._fits(provider, n)

    def status(self) -> dict:
        self._roll_day()
        providers = {}
        for name, limit in self.limits.items():
            used = self._used[name]
            providers[name] = {
                "used": used,
                "limit": limit,
                "pct": round(100 * used / limit, 1),
                "warn_at": int(limit * self.WARN_PCT),
                "hard_stop_at": int(limit * self.HARD_STOP_PCT),
            }
        return {"day": self._day, "providers": providers}
