"""
Picks Engine — Criteria Model
───────────────────────────────
The user-supplied filter set. Drives both prompt assembly and cache-key
derivation. Wire format is camelCase; unknown keys are ignored so extra
form fields can never leak into a cache key.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

# camelCase wire name → attribute
_WIRE_FIELDS = {
    "timeframe":        "timeframe",
    "riskAppetite":     "risk_appetite",
    "catalystType":     "catalyst_type",
    "sectorPreference": "sector_preference",
    "discoveryMethod":  "discovery_method",
    "numberOfPicks":    "number_of_picks",
    "model":            "model",
}

# Minimum acceptable risk/reward by appetite. Anything unrecognised is
# treated as conservative.
RISK_REWARD_FLOORS = {
    "aggressive":   2.0,
    "moderate":     1.5,
    "conservative": 1.2,
}


@dataclass(frozen=True)
class Criteria:
    timeframe:         str = "3-days"
    risk_appetite:     str = "aggressive"
    catalyst_type:     str = "all"
    sector_preference: str = "all"
    discovery_method:  str = "all"
    number_of_picks:   int = 4
    model:             Optional[str] = None    # None → configured default model

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Criteria":
        kwargs = {}
        for wire, attr in _WIRE_FIELDS.items():
            value = d.get(wire, d.get(attr))
            if value is None or value == "":
                continue
            if attr == "number_of_picks":
                value = int(value)
            elif isinstance(value, str):
                value = value.strip()
            kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        return {wire: getattr(self, attr) for wire, attr in _WIRE_FIELDS.items()}

    @property
    def risk_reward_floor(self) -> float:
        return RISK_REWARD_FLOORS.get(self.risk_appetite, RISK_REWARD_FLOORS["conservative"])
