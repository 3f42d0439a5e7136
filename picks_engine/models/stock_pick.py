"""
Picks Engine — Stock Pick Model
─────────────────────────────────
One structured recommendation. Created from generated JSON, repaired in
place by the validation engine, then frozen by convention once accepted
into a cached result set.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_WIRE_FIELDS = {
    "ticker":               "ticker",
    "companyName":          "company_name",
    "entryPrice":           "entry_price",
    "targetPrice":          "target_price",
    "stopLossPrice":        "stop_loss_price",
    "riskRewardRatio":      "risk_reward_ratio",
    "timeframe":            "timeframe",
    "rationale":            "rationale",
    "tags":                 "tags",
    "probabilityOfSuccess": "probability_of_success",
    "marketCapBillion":     "market_cap_billion",
    "sector":               "sector",
    "catalysts":            "catalysts",
    "technicalSignals":     "technical_signals",
    "riskFactors":          "risk_factors",
}

_FLOAT_FIELDS = {
    "entry_price", "target_price", "stop_loss_price",
    "risk_reward_ratio", "probability_of_success", "market_cap_billion",
}

# Older prompts asked for "target" / "stopLoss"; accept either spelling.
_ALIASES = {"target": "targetPrice", "stopLoss": "stopLossPrice"}


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
    return float(value)


@dataclass
class StockPick:
    ticker:                 str
    company_name:           str
    entry_price:            float
    target_price:           float
    stop_loss_price:        Optional[float] = None
    risk_reward_ratio:      float = 0.0
    timeframe:              str = ""
    rationale:              str = ""
    tags:                   List[str] = field(default_factory=list)
    probability_of_success: Optional[float] = None
    market_cap_billion:     Optional[float] = None
    sector:                 Optional[str] = None
    catalysts:              List[str] = field(default_factory=list)
    technical_signals:      List[str] = field(default_factory=list)
    risk_factors:           List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StockPick":
        """Build from wire JSON. Raises ValueError/TypeError on unusable numbers."""
        d = dict(d)
        for alias, canonical in _ALIASES.items():
            if d.get(canonical) is None and d.get(alias) is not None:
                d[canonical] = d[alias]

        kwargs = {}
        for wire, attr in _WIRE_FIELDS.items():
            value = d.get(wire, d.get(attr))
            if value is None:
                continue
            if attr in _FLOAT_FIELDS:
                value = _to_float(value)
            elif attr == "ticker":
                value = str(value).upper().strip()
            elif attr in ("tags", "catalysts", "technical_signals", "risk_factors"):
                value = [str(v) for v in value] if isinstance(value, list) else []
            kwargs[attr] = value
        kwargs.setdefault("ticker", "")
        kwargs.setdefault("company_name", "")
        kwargs.setdefault("entry_price", 0.0)
        kwargs.setdefault("target_price", 0.0)
        if kwargs.get("risk_reward_ratio") is None:
            kwargs["risk_reward_ratio"] = 0.0
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {wire: getattr(self, attr) for wire, attr in _WIRE_FIELDS.items()}

    @property
    def target_gain_pct(self) -> float:
        if not self.entry_price:
            return 0.0
        return round((self.target_price / self.entry_price - 1) * 100, 1)
