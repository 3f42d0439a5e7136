"""
Picks Engine — Yahoo Market Data
──────────────────────────────────
Default market-data collaborator. Satisfies the MarketDataProvider contract
with the public Yahoo chart / quoteSummary endpoints. No API keys needed.

  validate_ticker(t)     → bool
  quick_quote(t)         → {price, companyName}
  comprehensive_data(t)  → {quote{...}, profile{name, marketCap, sector, exchange}}
  overview()             → {governmentTrades: []}   (no free source; prompt degrades)
"""

import logging
import time
from typing import Optional

import httpx

from picks_engine.providers.base import MarketDataError

log = logging.getLogger("pe.market")

REQUEST_TIMEOUT = 8

YAHOO_URL          = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
YAHOO_FALLBACK_URL = "https://query2.finance.yahoo.com/v8/finance/chart/{symbol}"
YAHOO_SUMMARY      = "https://query2.finance.yahoo.com/v10/finance/quoteSummary/{symbol}"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}


def _raw(d: dict, k: str):
    v = d.get(k)
    return v.get("raw") if isinstance(v, dict) else v


class YahooMarketData:

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                timeout=REQUEST_TIMEOUT,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _chart_meta(self, symbol: str) -> Optional[dict]:
        client = await self._get_client()
        for url in (YAHOO_URL.format(symbol=symbol), YAHOO_FALLBACK_URL.format(symbol=symbol)):
            try:
                r = await client.get(url, headers=HEADERS, timeout=REQUEST_TIMEOUT)
                if r.status_code != 200:
                    continue
                result = r.json().get("chart", {}).get("result") or []
                if not result:
                    continue
                meta = result[0].get("meta", {})
                if meta.get("regularMarketPrice") or meta.get("previousClose"):
                    return meta
            except httpx.TimeoutException:
                log.warning(f"Timeout fetching {symbol}")
            except Exception as e:
                log.warning(f"Error fetching {symbol}: {e}")
        return None

    async def validate_ticker(self, ticker: str) -> bool:
        meta = await self._chart_meta(ticker.upper())
        if not meta:
            return False
        # Yahoo answers for delisted symbols too; require a live instrument type
        return meta.get("instrumentType", "EQUITY") in ("EQUITY", "ETF")

    async def quick_quote(self, ticker: str) -> dict:
        symbol = ticker.upper()
        meta = await self._chart_meta(symbol)
        if not meta:
            raise MarketDataError(f"No quote for {symbol}")
        price = meta.get("regularMarketPrice") or meta.get("previousClose")
        return {
            "price":       round(float(price), 4),
            "companyName": meta.get("longName") or meta.get("shortName"),
        }

    async def comprehensive_data(self, ticker: str) -> dict:
        symbol = ticker.upper()
        meta = await self._chart_meta(symbol)
        if not meta:
            raise MarketDataError(f"No market data for {symbol}")
        price = meta.get("regularMarketPrice") or meta.get("previousClose")
        prev_close = meta.get("previousClose") or meta.get("chartPreviousClose") or price
        change = price - prev_close

        profile = await self._profile(symbol)
        return {
            "quote": {
                "symbol":        symbol,
                "price":         round(float(price), 4),
                "change":        round(float(change), 4),
                "changePercent": round(float(change / prev_close * 100), 4) if prev_close else 0,
                "volume":        meta.get("regularMarketVolume"),
                "lastUpdated":   int(time.time()),
            },
            "profile": {
                "name":      profile.get("name") or meta.get("longName") or meta.get("shortName") or symbol,
                "marketCap": profile.get("marketCap") or 0,
                "sector":    profile.get("sector") or "Unknown",
                "exchange":  profile.get("exchange") or meta.get("exchangeName", ""),
            },
        }

    async def _profile(self, symbol: str) -> dict:
        client = await self._get_client()
        params = {"modules": "price,assetProfile"}
        try:
            r = await client.get(YAHOO_SUMMARY.format(symbol=symbol), params=params,
                                 headers=HEADERS, timeout=REQUEST_TIMEOUT)
            if r.status_code != 200:
                return {}
            result = (r.json().get("quoteSummary", {}).get("result") or [{}])[0]
        except Exception as e:
            log.warning(f"Profile fetch failed for {symbol}: {e}")
            return {}
        price = result.get("price", {})
        asset = result.get("assetProfile", {})
        return {
            "name":      price.get("longName") or price.get("shortName"),
            "marketCap": _raw(price, "marketCap"),
            "sector":    asset.get("sector"),
            "exchange":  price.get("exchangeName"),
        }

    async def overview(self) -> dict:
        return {"governmentTrades": []}
