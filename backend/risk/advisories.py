from __future__ import annotations

from dataclasses import dataclass
from typing import List

from backend.risk.markets import MarketRule
from backend.risk.risk_engine import PositionSizing
from backend.risk.validation import ValidatedInput


HIGH_RISK_WARNING = "High risk: Consider risking no more than 2-5% per trade"
TIGHT_STOP_WARNING = (
    "Very tight stop loss: Consider if this allows enough room for normal price fluctuation"
)
UNAFFORDABLE_WARNING = (
    "Cannot afford any shares with current capital or inputs. "
    "Consider increasing capital or adjusting stop loss"
)
UNAFFORDABLE_LOT_WARNING = (
    "Cannot afford a single lot of {lot_size} shares with current capital or inputs. "
    "Consider increasing capital or adjusting stop loss"
)


@dataclass(frozen=True)
class WarningThresholds:
    high_risk_pct: float = 5.0
    tight_stop_ratio: float = 0.015


DEFAULT_THRESHOLDS = WarningThresholds()


def generate_warnings(
    inputs: ValidatedInput,
    rule: MarketRule,
    sizing: PositionSizing,
    thresholds: WarningThresholds = DEFAULT_THRESHOLDS,
) -> List[str]:
    """Advisory messages for a sized position, in display order."""
    warnings: List[str] = []
    if inputs.risk_percentage > thresholds.high_risk_pct:
        warnings.append(HIGH_RISK_WARNING)
    if sizing.risk_per_share / inputs.buy_price < thresholds.tight_stop_ratio:
        warnings.append(TIGHT_STOP_WARNING)
    if sizing.max_shares == 0:
        if rule.uses_lots:
            warnings.append(UNAFFORDABLE_LOT_WARNING.format(lot_size=rule.lot_size))
        else:
            warnings.append(UNAFFORDABLE_WARNING)
    return warnings
