"""
Static tables for symbol resolution and intent classification.

Per asset class:
  - aliases: common names / nicknames -> canonical symbol
  - indicators: technical indicators the advisor can fetch
  - comprehensive_indicators: bundle used for analysis-style queries
  - general_keywords: words that mark an instrument-less market question
  - popular: shortlist offered when a query cannot be resolved
  - default_symbol: used only by the "default_instrument" unresolved policy
"""

ASSET_CLASSES = ("stock", "forex", "crypto")

STOCK_ALIASES = {
    "apple": "AAPL",
    "tesla": "TSLA",
    "microsoft": "MSFT",
    "google": "GOOGL",
    "alphabet": "GOOGL",
    "amazon": "AMZN",
    "facebook": "META",
    "meta": "META",
    "nvidia": "NVDA",
    "amd": "AMD",
    "intel": "INTC",
    "netflix": "NFLX",
    "disney": "DIS",
    "walmart": "WMT",
    "coca cola": "KO",
    "coca-cola": "KO",
    "pepsi": "PEP",
    "johnson & johnson": "JNJ",
    "johnson and johnson": "JNJ",
    "visa": "V",
    "mastercard": "MA",
    "boeing": "BA",
    "nike": "NKE",
    "mcdonalds": "MCD",
    "mcdonald's": "MCD",
    "starbucks": "SBUX",
    "berkshire": "BRK.B",
    "jpmorgan": "JPM",
    "jp morgan": "JPM",
    "s&p 500": "SPY",
    "s&p": "SPY",
    "nasdaq 100": "QQQ",
}

FOREX_ALIASES = {
    "cable": "GBP/USD",
    "fiber": "EUR/USD",
    "fibre": "EUR/USD",
    "euro dollar": "EUR/USD",
    "eurodollar": "EUR/USD",
    "aussie": "AUD/USD",
    "kiwi": "NZD/USD",
    "loonie": "USD/CAD",
    "swissie": "USD/CHF",
    "gopher": "USD/JPY",
    "dollar yen": "USD/JPY",
    "guppy": "GBP/JPY",
    "geppy": "GBP/JPY",
    "yuppy": "EUR/JPY",
    "chunnel": "EUR/GBP",
    "euro pound": "EUR/GBP",
    "euro yen": "EUR/JPY",
    "pound yen": "GBP/JPY",
    "euro swissy": "EUR/CHF",
}

CRYPTO_ALIASES = {
    "bitcoin": "BTC/USD",
    "btc": "BTC/USD",
    "ethereum": "ETH/USD",
    "eth": "ETH/USD",
    "ether": "ETH/USD",
    "cardano": "ADA/USD",
    "ada": "ADA/USD",
    "solana": "SOL/USD",
    "sol": "SOL/USD",
    "polkadot": "DOT/USD",
    "dot": "DOT/USD",
    "chainlink": "LINK/USD",
    "link": "LINK/USD",
    "polygon": "MATIC/USD",
    "matic": "MATIC/USD",
    "avalanche": "AVAX/USD",
    "avax": "AVAX/USD",
    "binance coin": "BNB/USD",
    "binance": "BNB/USD",
    "bnb": "BNB/USD",
    "ripple": "XRP/USD",
    "xrp": "XRP/USD",
    "dogecoin": "DOGE/USD",
    "doge": "DOGE/USD",
    "shiba": "SHIB/USD",
    "shib": "SHIB/USD",
    "uniswap": "UNI/USD",
    "aave": "AAVE/USD",
    "compound": "COMP/USD",
    "maker": "MKR/USD",
    "mkr": "MKR/USD",
    "litecoin": "LTC/USD",
    "ltc": "LTC/USD",
    "monero": "XMR/USD",
    "xmr": "XMR/USD",
    "zcash": "ZEC/USD",
    "stellar": "XLM/USD",
    "xlm": "XLM/USD",
    "tron": "TRX/USD",
    "trx": "TRX/USD",
    "iota": "MIOTA/USD",
}

ALIASES = {
    "stock": STOCK_ALIASES,
    "forex": FOREX_ALIASES,
    "crypto": CRYPTO_ALIASES,
}

# ISO codes matched case-insensitively in free text. Codes that collide with
# ordinary English words (TRY, ALL, CUP, TOP, ...) are only matched uppercase.
MAJOR_CURRENCY_CODES = {"USD", "EUR", "GBP", "JPY", "CHF", "AUD", "CAD", "NZD"}

CURRENCY_CODES = MAJOR_CURRENCY_CODES | {
    "CNY", "CNH", "HKD", "SGD", "INR", "MXN", "ZAR", "SEK", "NOK", "DKK",
    "TRY", "RUB", "PLN", "HUF", "CZK", "BRL", "KRW", "THB", "IDR", "ILS",
    "AED", "SAR", "PHP", "MYR", "TWD",
}

# Longest names first so "australian dollar" is consumed before "dollar".
CURRENCY_NAMES = {
    "new zealand dollar": "NZD",
    "australian dollar": "AUD",
    "canadian dollar": "CAD",
    "singapore dollar": "SGD",
    "hong kong dollar": "HKD",
    "swiss franc": "CHF",
    "british pound": "GBP",
    "japanese yen": "JPY",
    "us dollar": "USD",
    "u.s. dollar": "USD",
    "sterling": "GBP",
    "renminbi": "CNY",
    "dollar": "USD",
    "pound": "GBP",
    "franc": "CHF",
    "rupee": "INR",
    "ruble": "RUB",
    "rouble": "RUB",
    "zloty": "PLN",
    "forint": "HUF",
    "krona": "SEK",
    "krone": "NOK",
    "peso": "MXN",
    "yuan": "CNY",
    "rand": "ZAR",
    "euro": "EUR",
    "lira": "TRY",
    "yen": "JPY",
}

# Uppercase tokens that are never stock tickers in a chat message.
STOCK_STOPWORDS = {
    "I", "A", "AM", "AN", "AS", "AT", "BE", "BY", "DO", "GO",
    "IF", "IN", "IS", "IT", "ME", "MY", "NO", "OF", "ON", "OR",
    "SO", "TO", "UP", "US", "WE", "OK", "THE", "AND", "FOR", "ARE",
    "BUT", "NOT", "YOU", "ALL", "CAN", "HAD", "HER", "WAS",
    "ONE", "OUR", "OUT", "HAS", "HIS", "HOW", "ITS", "MAY",
    "NEW", "NOW", "OLD", "SEE", "WAY", "WHO", "DID", "GET",
    "HIM", "LET", "SAY", "SHE", "TOO", "USE", "BUY", "SELL",
    "HOLD", "LONG", "SHORT", "PUT", "CALL", "ETF", "IPO",
    "CEO", "CFO", "COO", "EPS", "GDP", "CPI", "FED", "SEC",
    "FDA", "SMA", "ATH", "ATL", "YOY", "QOQ", "EBITDA",
    "NYSE", "WHAT", "WHICH", "RATE", "WHY", "TELL", "MORE",
    "GIVE", "BEST", "HIGH", "LOW", "TOP", "YES", "THAT", "THIS",
    "THEY", "THEM", "WILL", "WITH", "JUST", "ALSO", "BEEN",
    "LIKE", "MUCH", "WHEN", "ONLY", "VERY", "SURE", "YEAH",
    "ABOUT", "PRICE", "STOCK", "SHOW", "PLEASE", "THANKS", "HELP",
    "RSI", "EMA", "MACD", "ADX", "ATR", "OBV", "CCI", "MOM",
    "STOCH", "AROON", "VWAP", "USD", "EUR", "GBP", "JPY",
}

STOCK_INDICATORS = ["rsi", "ema", "macd", "bbands", "adx", "atr", "aroon"]
FOREX_INDICATORS = [
    "rsi", "macd", "ema", "bbands", "adx", "atr", "ichimoku",
    "stoch", "cci", "mom", "pivot_points_hl",
]
CRYPTO_INDICATORS = [
    "rsi", "ema", "macd", "bbands", "atr", "obv", "supertrend", "stoch", "adx",
]

INDICATORS = {
    "stock": STOCK_INDICATORS,
    "forex": FOREX_INDICATORS,
    "crypto": CRYPTO_INDICATORS,
}

# Spoken forms that map onto an indicator endpoint name.
INDICATOR_SYNONYMS = {
    "bollinger": "bbands",
    "stochastic": "stoch",
    "momentum": "mom",
    "pivot": "pivot_points_hl",
    "ichimoku cloud": "ichimoku",
}

COMPREHENSIVE_INDICATORS = {
    "stock": ["ema", "rsi", "macd", "bbands", "adx"],
    "forex": ["ema", "rsi", "macd", "bbands", "adx", "atr"],
    "crypto": ["rsi", "ema", "macd", "bbands", "atr", "obv"],
}

# TwelveData query parameters per indicator endpoint (interval/outputsize added by the provider).
INDICATOR_PARAMS = {
    "rsi": {"time_period": 14},
    "ema": {"time_period": 20},
    "ema_50": {"time_period": 50},
    "macd": {"fast_period": 12, "slow_period": 26, "signal_period": 9},
    "bbands": {"time_period": 20, "sd": 2},
    "adx": {"time_period": 14},
    "atr": {"time_period": 14},
    "aroon": {"time_period": 14},
    "obv": {},
    "supertrend": {"multiplier": 3, "period": 10},
    "stoch": {"fast_k_period": 14, "slow_k_period": 3, "slow_d_period": 3},
    "cci": {"time_period": 14},
    "mom": {"time_period": 10},
    "ichimoku": {
        "tenkan_period": 9,
        "kijun_period": 26,
        "senkou_span_b_period": 52,
        "displacement": 26,
    },
    "pivot_points_hl": {"time_period": 20},
}

# EMA is fetched at two periods; the second lands under its own key.
INDICATOR_COMPANIONS = {
    "ema": ["ema_50"],
}

QUOTE_KEYWORDS = [
    "price", "worth", "value", "quote", "cost", "trading at", "change",
    "volume", "buy", "sell", "how much", "going for", "rate",
]

SERIES_KEYWORDS = [
    "trend", "time series", "history", "historical", "chart", "doing",
    "performance", "movement", "direction", "past week", "past month",
    "last week", "last month",
]

COMPREHENSIVE_KEYWORDS = [
    "analyz", "analys", "report", "research", "invest", "strategy",
    "recommend", "assessment", "evaluation", "overview", "comprehensive",
    "detailed", "full", "complete", "portfolio", "outlook", "deep dive",
]

SENTIMENT_KEYWORDS = [
    "sentiment", "reddit", "social", "mood", "bullish", "bearish", "hype", "buzz",
]

INTELLIGENCE_KEYWORDS = [
    "news", "alert", "risk", "intelligence", "headline", "catalyst", "geopolitic",
]

GENERAL_KEYWORDS = {
    "stock": [
        "market", "sector", "general", "overall", "economy", "tips",
        "advice", "help", "explain", "what is", "how to",
    ],
    "forex": [
        "market", "forex", "currency", "currencies", "general", "overall",
        "economy", "central bank", "tips", "advice", "help", "explain",
        "what is", "how to", "trading",
    ],
    "crypto": [
        "market", "crypto", "cryptocurrency", "digital", "blockchain",
        "general", "overall", "defi", "tips", "advice", "help", "explain",
        "what is", "how to", "trading",
    ],
}

# Words removed before matching a descriptive name against catalog display names.
BOILERPLATE_WORDS = {
    "stock", "stocks", "share", "shares", "forex", "fx", "pair", "pairs",
    "currency", "crypto", "coin", "token", "inc", "corp", "corporation",
    "ltd", "company", "price", "prices", "quote", "of", "the", "for",
    "please", "analyze", "analyse", "analysis", "show", "me", "what",
    "what's", "whats", "is", "how", "about", "tell", "give", "chart",
    "rate", "exchange", "today", "now", "current", "a", "an", "on",
    "doing", "look", "at", "check", "its", "it's", "and", "with",
}

# Legal-form words that say nothing about which company is meant.
CORPORATE_SUFFIXES = {
    "inc", "corp", "corporation", "co", "company", "ltd", "limited", "plc",
    "llc", "lp", "sa", "ag", "nv", "se", "group", "holding", "holdings",
    "trust", "class", "ordinary",
}
BOILERPLATE_WORDS |= CORPORATE_SUFFIXES

POPULAR_INSTRUMENTS = {
    "stock": [
        ("AAPL", "Apple"), ("TSLA", "Tesla"), ("MSFT", "Microsoft"),
        ("GOOGL", "Alphabet"), ("AMZN", "Amazon"), ("NVDA", "NVIDIA"),
        ("SPY", "S&P 500 ETF"), ("QQQ", "NASDAQ 100 ETF"),
    ],
    "forex": [
        ("EUR/USD", "Euro to US Dollar"), ("GBP/USD", "British Pound to US Dollar"),
        ("USD/JPY", "US Dollar to Japanese Yen"), ("AUD/USD", "Australian Dollar to US Dollar"),
        ("USD/CAD", "US Dollar to Canadian Dollar"), ("GBP/JPY", "British Pound to Japanese Yen"),
    ],
    "crypto": [
        ("BTC/USD", "Bitcoin"), ("ETH/USD", "Ethereum"), ("ADA/USD", "Cardano"),
        ("SOL/USD", "Solana"), ("DOT/USD", "Polkadot"), ("LINK/USD", "Chainlink"),
        ("MATIC/USD", "Polygon"), ("AVAX/USD", "Avalanche"),
    ],
}

DEFAULT_SYMBOLS = {
    "stock": "AAPL",
    "forex": "EUR/USD",
    "crypto": "BTC/USD",
}

STOCK_EXCHANGES = ["NASDAQ", "NYSE"]
