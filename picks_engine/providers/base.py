"""
Picks Engine — Collaborator Contracts
───────────────────────────────────────
The engine only depends on these shapes. Any object with matching async
methods works (tests pass in small fakes).
"""

from typing import Optional, Protocol

from picks_engine.errors import PicksEngineError


class MarketDataError(PicksEngineError):
    """A market-data call returned nothing usable."""


class TextGenerator(Protocol):
    async def generate(self, prompt: str, temperature: float, max_tokens: int,
                       model: Optional[str] = None) -> str: ...


class MarketDataProvider(Protocol):
    async def validate_ticker(self, ticker: str) -> bool: ...

    async def quick_quote(self, ticker: str) -> dict: ...

    async def comprehensive_data(self, ticker: str) -> dict: ...

    async def overview(self) -> dict: ...
