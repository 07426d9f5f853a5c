"""Current-price lookup for stock lots.

Quotes come from an ordered list of providers.  For each symbol the providers
are tried in turn and the first positive price wins; a provider that errors or
has no quote is logged and skipped.  Nothing here is used by the tax
calculators, which only ever see the prices already stored on each lot.

Default order: Yahoo Finance (via ``yfinance``), Twelve Data, then Alpha
Vantage when an API key has been configured.  Refreshing several lots waits a
fixed delay between lookups to stay inside free-tier rate limits.
"""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

import requests
import yfinance as yf

from .models import Holding

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10
DEFAULT_DELAY = 1.2

_TICKER_RE = re.compile(r"^[A-Z]{1,5}$")


def is_ticker(name: str) -> bool:
    """Whether a lot name looks like an exchange ticker (1-5 letters)."""
    return bool(_TICKER_RE.match((name or "").strip().upper()))


def _positive(value) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


class PriceProvider:
    name = "provider"

    def fetch(self, symbol: str) -> Optional[float]:
        """Return the latest price for ``symbol`` or ``None`` if there is none."""
        raise NotImplementedError


class YahooFinanceProvider(PriceProvider):
    name = "Yahoo Finance"

    def fetch(self, symbol: str) -> Optional[float]:
        hist = yf.Ticker(symbol).history(period="5d")
        if hist.empty:
            return None
        return _positive(hist["Close"].iloc[-1])


class TwelveDataProvider(PriceProvider):
    name = "Twelve Data"
    url = "https://api.twelvedata.com/price"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or "demo"

    def fetch(self, symbol: str) -> Optional[float]:
        resp = requests.get(self.url, params={"symbol": symbol, "apikey": self.api_key}, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return _positive(resp.json().get("price"))


class AlphaVantageProvider(PriceProvider):
    name = "Alpha Vantage"
    url = "https://www.alphavantage.co/query"

    def __init__(self, api_key: str):
        self.api_key = api_key

    def fetch(self, symbol: str) -> Optional[float]:
        params = {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key}
        resp = requests.get(self.url, params=params, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        quote = resp.json().get("Global Quote") or {}
        return _positive(quote.get("05. price"))


def default_providers(api_key: Optional[str] = None) -> List[PriceProvider]:
    """Providers in fallback order.

    ``api_key`` is the user's Alpha Vantage key; without one (and without
    ``ALPHA_VANTAGE_API_KEY`` in the environment) that provider is left out.
    """
    api_key = api_key or os.environ.get("ALPHA_VANTAGE_API_KEY")
    providers: List[PriceProvider] = [
        YahooFinanceProvider(),
        TwelveDataProvider(os.environ.get("TWELVE_DATA_API_KEY")),
    ]
    if api_key:
        providers.append(AlphaVantageProvider(api_key))
    return providers


def lookup_price(symbol: str, providers: Sequence[PriceProvider]) -> Optional[float]:
    """First usable price for ``symbol`` across ``providers``, or ``None``."""
    for provider in providers:
        try:
            price = provider.fetch(symbol)
        except Exception as e:  # any provider failure falls through to the next one
            logger.warning("%s lookup for %s failed: %s", provider.name, symbol, e)
            continue
        if price is not None and price > 0:
            logger.debug("%s returned %.2f for %s", provider.name, price, symbol)
            return price
        logger.info("%s has no price for %s", provider.name, symbol)
    logger.warning("No provider returned a price for %s", symbol)
    return None


@dataclass
class PriceRefresh:
    lots: Tuple[Holding, ...]
    updated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.updated) + len(self.failed)

    def summary(self) -> str:
        if self.updated:
            return f"Updated {len(self.updated)} of {self.attempted} prices!"
        if self.attempted:
            return "Failed to fetch prices."
        return "No ticker symbols to update."


def refresh_prices(
    lots: Sequence[Holding],
    providers: Sequence[PriceProvider],
    delay: float = DEFAULT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    on_update: Optional[Callable[[Tuple[Holding, ...]], None]] = None,
) -> PriceRefresh:
    """Look up a fresh price for every lot whose name is a ticker.

    Lookups run one at a time with ``delay`` seconds between them.  Each
    successful lookup is applied on its own (rounded to cents) and, when given,
    ``on_update`` receives the lots after every change, so stopping early
    still leaves a consistent set.  Failed or skipped lots keep their price.
    """
    current = list(lots)
    result = PriceRefresh(lots=tuple(current))
    first = True
    for i, lot in enumerate(current):
        ticker = lot.name.strip().upper()
        if not is_ticker(ticker):
            result.skipped.append(lot.name)
            continue
        if not first:
            sleep(delay)
        first = False

        price = lookup_price(ticker, providers)
        if price is None:
            result.failed.append(ticker)
            continue
        current[i] = replace(lot, current_price=round(price, 2))
        result.updated.append(ticker)
        result.lots = tuple(current)
        if on_update is not None:
            on_update(result.lots)

    logger.info(
        "Price refresh complete: %d updated, %d failed, %d skipped",
        len(result.updated), len(result.failed), len(result.skipped),
    )
    return result


__all__ = [
    "AlphaVantageProvider",
    "DEFAULT_DELAY",
    "PriceProvider",
    "PriceRefresh",
    "TwelveDataProvider",
    "YahooFinanceProvider",
    "default_providers",
    "is_ticker",
    "lookup_price",
    "refresh_prices",
]
