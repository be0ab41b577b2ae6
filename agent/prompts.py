import json

MARKET_LABELS = {
    "stock": "stock",
    "forex": "forex pair",
    "crypto": "crypto",
}

SYMBOL_EXAMPLES = {
    "stock": "'AAPL', 'TSLA', 'MSFT'",
    "forex": "'EUR/USD', 'GBP/JPY', 'USD/CAD'",
    "crypto": "'BTC/USD', 'ETH/USD', 'SOL/USD'",
}

QUERY_EXAMPLES = {
    "stock": ['"What\'s Apple trading at?"', '"AAPL RSI"', '"Analyze Microsoft"'],
    "forex": ['"How is cable doing?"', '"EUR/USD RSI"', '"Analyze euro vs yen"'],
    "crypto": ['"What\'s BTC worth?"', '"ETH analysis"', '"Analyze Solana"'],
}

GENERAL_TOPICS = {
    "stock": [
        "Market and sector overviews",
        "Trading strategy guidance and risk management",
        "Technical analysis education (RSI, MACD, moving averages)",
        "How to read earnings and fundamentals",
    ],
    "forex": [
        "Currency market overviews and session timing",
        "Central bank policy and its effect on pairs",
        "Technical analysis education (RSI, MACD, Ichimoku, pivots)",
        "Position sizing and risk management for leverage",
    ],
    "crypto": [
        "Cryptocurrency overviews (Bitcoin, Ethereum, altcoins)",
        "Market sentiment and trend identification",
        "Technical analysis education for crypto charts",
        "DeFi and blockchain technology explanations",
    ],
}

FALLBACK_TOPICS = {
    "network": "Network Issue Detected",
    "api": "Market Data Service Issue",
    "unknown": "Technical Issue Encountered",
}

SYSTEM_PROMPT = """You are a market analyst assistant for {market} questions.
The data has already been fetched and is provided to you in the user message as
JSON under "API Data". Do not attempt to fetch data yourself.

- Ground every number you quote in the API Data.
- If a category in the API Data carries an "error" field, tell the user that
  piece could not be fetched right now and continue with what is available.
- If the data ends with "... (data truncated)", work with what is present.
- Frame any trade idea with risk: entry zone, invalidation level, and what
  would change your view. Keep answers concise and structured.
"""


def system_prompt(asset_class: str) -> str:
    return SYSTEM_PROMPT.format(market=MARKET_LABELS.get(asset_class, asset_class))


def _bullets(items) -> str:
    return "\n".join(f"- {item}" for item in items)


def _instrument_list(instruments) -> str:
    return ", ".join(i.label() for i in instruments)


def general_help_message(asset_class: str, popular) -> str:
    label = MARKET_LABELS.get(asset_class, asset_class)
    return (
        f"I'd be happy to help with your {label} question! For general insights I can cover:\n\n"
        f"{_bullets(GENERAL_TOPICS.get(asset_class, []))}\n\n"
        f"**For specific analysis:** provide a symbol (e.g. {SYMBOL_EXAMPLES.get(asset_class, '')}) or a name.\n\n"
        f"**Popular to try:** {_instrument_list(popular)}\n\n"
        f"What would you like me to focus on?"
    )


def suggestions_message(asset_class: str, suggestions, popular) -> str:
    label = MARKET_LABELS.get(asset_class, asset_class)
    did_you_mean = _instrument_list(suggestions) if suggestions else f"Please provide a valid {label} symbol"
    return (
        f"I couldn't identify a specific {label} from your message.\n\n"
        f"**Did you mean:** {did_you_mean}\n\n"
        f"**Popular options:** {_instrument_list(popular)}\n\n"
        f"**Try formats like:**\n{_bullets(QUERY_EXAMPLES.get(asset_class, []))}"
    )


def not_found_message(symbol: str, asset_class: str, suggestions, popular) -> str:
    label = MARKET_LABELS.get(asset_class, asset_class)
    did_you_mean = _instrument_list(suggestions) if suggestions else "No similar symbols found"
    return (
        f"**{label.capitalize()} symbol '{symbol}' not found** in the available listings.\n\n"
        f"**Did you mean:** {did_you_mean}\n\n"
        f"**Popular options:** {_instrument_list(popular)}\n\n"
        f"Please provide a valid symbol (e.g. {SYMBOL_EXAMPLES.get(asset_class, '')})."
    )


def fallback_message(kind: str, asset_class: str, detail: str = "") -> str:
    """User-facing text for a failed turn. `kind` is network, api or unknown."""
    label = MARKET_LABELS.get(asset_class, asset_class)
    title = FALLBACK_TOPICS.get(kind, FALLBACK_TOPICS["unknown"])
    if kind == "network":
        body = "I'm having trouble reaching the market data service right now."
        advice = ["Try again in a few moments", f"Ask a general {label} question meanwhile"]
    elif kind == "api":
        body = "The market data provider is limiting or rejecting requests at the moment."
        advice = ["Wait a minute before retrying", "Ask about fewer indicators at once"]
    else:
        body = "Something unexpected went wrong while preparing your answer."
        advice = ["Rephrase your question", "Try a different symbol"]
    lines = [f"**{title}**", "", body]
    if detail:
        lines.append(f"Details: {detail[:200]}")
    lines += [
        "",
        "**What I can still help with:**",
        _bullets(GENERAL_TOPICS.get(asset_class, [])),
        "",
        "**Next steps:**",
        _bullets(advice),
    ]
    return "\n".join(lines)


def build_user_prompt(text: str, serialized: str, history: list[dict] | None = None) -> str:
    prompt = f"{text}\n\nAPI Data: {serialized}"
    if history:
        recent = [{"role": m.get("role"), "content": m.get("content")} for m in history[-6:]]
        prompt += f"\n\nRecent Chat History: {json.dumps(recent)}"
    return prompt


def _fmt(value, suffix="") -> str:
    if isinstance(value, float):
        return f"{value:,.4f}".rstrip("0").rstrip(".") + suffix
    return f"{value}{suffix}"


def data_summary(label: str, categories: dict) -> str:
    """Plain-text digest of compacted data, used when no language model is configured."""
    lines = [f"**{label}**"]
    quote = categories.get("quote") or {}
    if "error" in quote:
        lines.append(f"- Quote unavailable: {quote['error']}")
    elif quote.get("price") is not None:
        line = f"- Price: {_fmt(quote['price'])}"
        if quote.get("change_percent") is not None:
            line += f" ({_fmt(quote['change_percent'], '%')})"
        lines.append(line)

    for name, value in categories.items():
        if name in ("quote", "time_series", "sentiment", "intelligence", "alerts"):
            continue
        if not isinstance(value, dict):
            continue
        if "error" in value:
            lines.append(f"- {name.upper()}: unavailable ({value['error']})")
            continue
        readings = ", ".join(f"{k}={_fmt(v)}" for k, v in value.items() if k != "datetime")
        if readings:
            lines.append(f"- {name.upper()}: {readings}")

    series = categories.get("time_series") or {}
    if series.get("values"):
        closes = [p.get("close") for p in series["values"] if p.get("close") is not None]
        if closes:
            lines.append(f"- Recent closes: {', '.join(_fmt(c) for c in closes)}")

    sentiment = categories.get("sentiment") or {}
    if sentiment.get("overall_sentiment"):
        lines.append(
            f"- Social sentiment: {sentiment['overall_sentiment']} "
            f"({_fmt(sentiment.get('bullish_percentage', 0), '%')} bullish)"
        )

    intel = categories.get("intelligence") or {}
    if intel.get("analysis"):
        lines.append(f"- Analysis: {intel['analysis'][:300]}")
    return "\n".join(lines)
