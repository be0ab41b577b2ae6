"""
Environment-driven settings.
Module-level constants are read once at import; load_settings() bundles the
tunables into a Settings object so components can be built with overrides.
"""
import os

from pydantic import BaseModel, field_validator


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[CONFIG] Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _int_env(name: str, default: int) -> int:
    return int(_float_env(name, default))


TWELVEDATA_API_KEY = os.getenv("TWELVEDATA_API_KEY", "")
TWELVEDATA_BASE_URL = os.getenv("TWELVEDATA_BASE_URL", "https://api.twelvedata.com")

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")

AGENT_API_KEY = os.getenv("AGENT_API_KEY")

SENTIMENT_BASE_URL = os.getenv("SENTIMENT_BASE_URL", "")
INTELLIGENCE_BASE_URL = os.getenv("INTELLIGENCE_BASE_URL", "")

# "clarify" or "default_instrument"
UNRESOLVED_POLICY = os.getenv("UNRESOLVED_POLICY", "clarify")

PAYLOAD_CHAR_BUDGET = _int_env("PAYLOAD_CHAR_BUDGET", 2000)
FETCH_MAX_RETRIES = _int_env("FETCH_MAX_RETRIES", 3)
FETCH_RETRY_DELAY = _float_env("FETCH_RETRY_DELAY", 10.0)
FETCH_TIMEOUT = _float_env("FETCH_TIMEOUT", 15.0)
API_CALL_THRESHOLD = _int_env("API_CALL_THRESHOLD", 4)
REQUEST_DELAY_SECONDS = _float_env("REQUEST_DELAY_SECONDS", 7.5)
COMPREHENSIVE_TIMEOUT = _float_env("COMPREHENSIVE_TIMEOUT", 30.0)
TWELVEDATA_DAILY_CREDITS = _int_env("TWELVEDATA_DAILY_CREDITS", 800)

# Room for the truncation marker plus some data.
MIN_PAYLOAD_CHARS = 64


class Settings(BaseModel):
    twelvedata_api_key: str = ""
    twelvedata_base_url: str = "https://api.twelvedata.com"
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    sentiment_base_url: str = ""
    intelligence_base_url: str = ""
    unresolved_policy: str = "clarify"
    payload_char_budget: int = 2000
    fetch_max_retries: int = 3
    fetch_retry_delay: float = 10.0
    fetch_timeout: float = 15.0
    api_call_threshold: int = 4
    request_delay_seconds: float = 7.5
    comprehensive_timeout: float = 30.0
    daily_credits: int = 800

    @field_validator("payload_char_budget")
    @classmethod
    def _clamp_payload_budget(cls, v: int) -> int:
        if v < MIN_PAYLOAD_CHARS:
            print(f"[CONFIG] payload_char_budget {v} too small, using {MIN_PAYLOAD_CHARS}")
            return MIN_PAYLOAD_CHARS
        return v


def load_settings(**overrides) -> Settings:
    values = {
        "twelvedata_api_key": TWELVEDATA_API_KEY,
        "twelvedata_base_url": TWELVEDATA_BASE_URL,
        "anthropic_api_key": ANTHROPIC_API_KEY,
        "anthropic_model": ANTHROPIC_MODEL,
        "sentiment_base_url": SENTIMENT_BASE_URL,
        "intelligence_base_url": INTELLIGENCE_BASE_URL,
        "unresolved_policy": UNRESOLVED_POLICY,
        "payload_char_budget": PAYLOAD_CHAR_BUDGET,
        "fetch_max_retries": FETCH_MAX_RETRIES,
        "fetch_retry_delay": FETCH_RETRY_DELAY,
        "fetch_timeout": FETCH_TIMEOUT,
        "api_call_threshold": API_CALL_THRESHOLD,
        "request_delay_seconds": REQUEST_DELAY_SECONDS,
        "comprehensive_timeout": COMPREHENSIVE_TIMEOUT,
        "daily_credits": TWELVEDATA_DAILY_CREDITS,
    }
    values.update(overrides)
    return Settings(**values)
