"""
Picks Engine — Analysis Result Model
──────────────────────────────────────
Canonical structure of a single-ticker analysis.
This is what /api/analyze returns and what Redis stores.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class KeyMetrics:
    pe_ratio:   float = 25.0
    market_cap: str   = "N/A"      # "$12.3B"
    volume:     str   = "N/A"      # "1,234,567"
    volatility: float = 0.25

    def to_dict(self) -> dict:
        return {
            "peRatio":    self.pe_ratio,
            "marketCap":  self.market_cap,
            "volume":     self.volume,
            "volatility": self.volatility,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "KeyMetrics":
        return cls(
            pe_ratio=d.get("peRatio", 25.0),
            market_cap=d.get("marketCap", "N/A"),
            volume=d.get("volume", "N/A"),
            volatility=d.get("volatility", 0.25),
        )


@dataclass
class AnalysisResult:
    ticker:         str
    company_name:   str
    current_price:  float
    recommendation: str              # "BUY" | "SELL" | "HOLD"
    target_price:   float
    stop_loss:      float
    confidence:     float            # 0-100
    rationale:      str
    risk_level:     str              # "LOW" | "MEDIUM" | "HIGH"
    timeframe:      str
    key_metrics:    KeyMetrics = field(default_factory=KeyMetrics)
    data_source:    Optional[str] = None
    timestamp:      Optional[str] = None   # ISO

    def to_dict(self) -> dict:
        return {
            "ticker":         self.ticker,
            "companyName":    self.company_name,
            "currentPrice":   self.current_price,
            "recommendation": self.recommendation,
            "targetPrice":    self.target_price,
            "stopLoss":       self.stop_loss,
            "confidence":     self.confidence,
            "rationale":      self.rationale,
            "riskLevel":      self.risk_level,
            "timeframe":      self.timeframe,
            "keyMetrics":     self.key_metrics.to_dict(),
            "dataSource":     self.data_source,
            "timestamp":      self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "AnalysisResult":
        return cls(
            ticker=d.get("ticker", ""),
            company_name=d.get("companyName", ""),
            current_price=d.get("currentPrice", 0.0),
            recommendation=d.get("recommendation", "HOLD"),
            target_price=d.get("targetPrice", 0.0),
            stop_loss=d.get("stopLoss", 0.0),
            confidence=d.get("confidence", 75),
            rationale=d.get("rationale", ""),
            risk_level=d.get("riskLevel", "MEDIUM"),
            timeframe=d.get("timeframe", ""),
            key_metrics=KeyMetrics.from_dict(d.get("keyMetrics") or {}),
            data_source=d.get("dataSource"),
            timestamp=d.get("timestamp"),
        )
