from .analysis import AnalysisResult, KeyMetrics
from .criteria import Criteria, RISK_REWARD_FLOORS
from .stock_pick import StockPick

__all__ = ["AnalysisResult", "KeyMetrics", "Criteria", "RISK_REWARD_FLOORS", "StockPick"]
