"""Detect the company a query is about and return its ticker symbol."""
from __future__ import annotations

import re

# Lower-case company names/aliases -> ticker. Longer names are matched first.
COMPANY_TICKERS: dict[str, str] = {
    "apple": "AAPL",
    "microsoft": "MSFT",
    "alphabet": "GOOGL",
    "google": "GOOGL",
    "amazon": "AMZN",
    "meta platforms": "META",
    "facebook": "META",
    "nvidia": "NVDA",
    "tesla": "TSLA",
    "netflix": "NFLX",
    "berkshire hathaway": "BRK.B",
    "jpmorgan": "JPM",
    "jp morgan": "JPM",
    "visa": "V",
    "mastercard": "MA",
    "walmart": "WMT",
    "johnson & johnson": "JNJ",
    "exxon": "XOM",
    "exxonmobil": "XOM",
    "chevron": "CVX",
    "procter & gamble": "PG",
    "coca-cola": "KO",
    "coca cola": "KO",
    "pepsico": "PEP",
    "pepsi": "PEP",
    "disney": "DIS",
    "intel": "INTC",
    "amd": "AMD",
    "advanced micro devices": "AMD",
    "oracle": "ORCL",
    "salesforce": "CRM",
    "adobe": "ADBE",
    "ibm": "IBM",
    "qualcomm": "QCOM",
    "broadcom": "AVGO",
    "paypal": "PYPL",
    "uber": "UBER",
    "airbnb": "ABNB",
    "spotify": "SPOT",
    "shopify": "SHOP",
    "palantir": "PLTR",
    "snowflake": "SNOW",
    "boeing": "BA",
    "starbucks": "SBUX",
    "mcdonald's": "MCD",
    "mcdonalds": "MCD",
    "nike": "NKE",
    "costco": "COST",
    "home depot": "HD",
    "pfizer": "PFE",
    "moderna": "MRNA",
    "goldman sachs": "GS",
    "morgan stanley": "MS",
    "bank of america": "BAC",
    "wells fargo": "WFC",
    "ford": "F",
    "general motors": "GM",
    "coinbase": "COIN",
    "alibaba": "BABA",
    "tsmc": "TSM",
    "taiwan semiconductor": "TSM",
}

KNOWN_TICKERS = frozenset(COMPANY_TICKERS.values())

TICKER_RE = re.compile(r"^[A-Z]{1,5}(?:\.[A-Z])?$")
CASHTAG_RE = re.compile(r"\$([A-Za-z]{1,5}(?:\.[A-Za-z])?)\b")
UPPER_TOKEN_RE = re.compile(r"\b([A-Z]{2,5}(?:\.[A-Z])?)\b")

_NAME_PATTERNS = [
    (re.compile(rf"(?<![\w$]){re.escape(name)}(?![\w])", re.IGNORECASE), symbol)
    for name, symbol in sorted(COMPANY_TICKERS.items(), key=lambda kv: -len(kv[0]))
]


def validate_ticker(ticker: str) -> bool:
    if not ticker or not isinstance(ticker, str):
        return False
    return TICKER_RE.match(ticker.upper()) is not None


def detect_company_ticker(query: str) -> str | None:
    if not query:
        return None

    cashtag = CASHTAG_RE.search(query)
    if cashtag and validate_ticker(cashtag.group(1)):
        return cashtag.group(1).upper()

    best: tuple[int, str] | None = None
    for pattern, symbol in _NAME_PATTERNS:
        match = pattern.search(query)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), symbol)
    if best is not None:
        return best[1]

    for token in UPPER_TOKEN_RE.findall(query):
        if token in KNOWN_TICKERS:
            return token
    return None
