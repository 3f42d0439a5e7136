from .anthropic_llm import AnthropicGenerator
from .base import MarketDataError, MarketDataProvider, TextGenerator
from .yahoo import YahooMarketData

__all__ = ["AnthropicGenerator", "MarketDataError", "MarketDataProvider", "TextGenerator", "YahooMarketData"]
