"""
Shared fixtures. Redis is faked with fakeredis; market data and the
generative model are small in-process fakes.
"""

import json
from typing import Dict, Optional

import fakeredis
import pytest
import pytest_asyncio

from picks_engine.cache.store import CacheStore
from picks_engine.config import Settings


class FakeMarketData:
    """Quotes by ticker. Tickers missing from `valid` fail validation."""

    def __init__(self, quotes: Optional[Dict[str, dict]] = None, valid=None,
                 overview: Optional[dict] = None):
        self.quotes = quotes or {}
        self.valid = set(valid) if valid is not None else None
        self._overview = overview or {"governmentTrades": []}
        self.comprehensive_calls = 0

    async def validate_ticker(self, ticker: str) -> bool:
        return self.valid is None or ticker in self.valid

    async def quick_quote(self, ticker: str) -> dict:
        if ticker not in self.quotes:
            raise RuntimeError(f"no quote for {ticker}")
        return self.quotes[ticker]

    async def comprehensive_data(self, ticker: str) -> dict:
        self.comprehensive_calls += 1
        quote = self.quotes.get(ticker, {"price": 100.0})
        return {
            "quote":   {"symbol": ticker, "price": quote["price"], "volume": 1234567},
            "profile": {"name": quote.get("companyName", f"{ticker} Inc"),
                        "marketCap": 12_300_000_000, "sector": "Technology", "exchange": "NMS"},
        }

    async def overview(self) -> dict:
        return self._overview


class FakeGenerator:
    """Returns canned responses in order and records every prompt."""

    def __init__(self, *responses: str):
        self.responses = list(responses)
        self.prompts = []
        self.models = []

    async def generate(self, prompt, temperature, max_tokens, model=None) -> str:
        self.prompts.append(prompt)
        self.models.append(model)
        return self.responses.pop(0)


def picks_json(*picks: dict) -> str:
    return "Here are the picks:\n" + json.dumps({"picks": list(picks)}) + "\nGood luck."


def raw_pick(ticker="AAPL", entry=100.0, target=130.0, stop=90.0, **extra) -> dict:
    pick = {
        "ticker":        ticker,
        "companyName":   f"{ticker} Corporation",
        "entryPrice":    entry,
        "targetPrice":   target,
        "stopLossPrice": stop,
    }
    pick.update(extra)
    return pick


@pytest.fixture
def fake_redis():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest_asyncio.fixture
async def store(fake_redis):
    s = CacheStore(fake_redis)
    yield s
    await s.close()


@pytest.fixture
def disabled_store():
    return CacheStore(None)


@pytest.fixture
def settings():
    return Settings(lookup_timeout=1.0, warm_interval=0)
