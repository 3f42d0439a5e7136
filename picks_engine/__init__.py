"""
Picks Engine
─────────────
Caching and response-normalisation core for AI-generated stock picks.

    from picks_engine import PicksEngine, Settings, Criteria
    engine = PicksEngine.from_settings(Settings.from_env())
    result = await engine.generate_picks(Criteria(risk_appetite="moderate"))
"""

from .config import Settings
from .engine import PicksEngine
from .errors import (
    BatchEmptyError, ConfigurationError, FormatError, GenerationError,
    ParseError, PicksEngineError, ResponseValidationError,
)
from .models import AnalysisResult, Criteria, StockPick

__all__ = [
    "Settings", "PicksEngine", "Criteria", "StockPick", "AnalysisResult",
    "PicksEngineError", "ConfigurationError", "GenerationError",
    "ResponseValidationError", "ParseError", "FormatError", "BatchEmptyError",
]
