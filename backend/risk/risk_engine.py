from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from backend.risk.markets import MarketRule
from backend.risk.validation import ValidatedInput


@dataclass(frozen=True)
class PositionSizing:
    risk_amount: float
    risk_per_share: float
    risk_based_shares: int
    capital_based_shares: int
    final_share_count_pre_lot: int
    max_lots: Optional[int]
    max_shares: int
    position_value: float
    position_size_percentage: float
    actual_risk_amount: float
    actual_risk_percentage: float

    @property
    def is_valid(self) -> bool:
        return self.max_shares > 0


@dataclass(frozen=True)
class CalculationResult(PositionSizing):
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_sizing(cls, sizing: PositionSizing, warnings: Sequence[str]) -> "CalculationResult":
        return cls(**asdict(sizing), warnings=tuple(warnings))


class PositionSizingError(Exception):
    """Raised when sizing cannot be computed safely."""


class DegenerateInputError(PositionSizingError):
    """Raised when input that should have been rejected upstream reaches the sizer."""


def size_position(inputs: ValidatedInput, rule: MarketRule) -> PositionSizing:
    """
    Size a long position as the smaller of the risk budget and the cash budget.

    risk_based_shares = floor(principal * risk% / (buy - stop))
    capital_based_shares = floor(principal / buy)

    The smaller count is then truncated to whole lots when the market trades
    in lots. A zero share count is a valid outcome, not an error.
    """
    principal = inputs.principal
    buy_price = inputs.buy_price

    if not (math.isfinite(principal) and principal > 0):
        raise DegenerateInputError(f"Principal must be positive, got {principal!r}")
    if not (math.isfinite(buy_price) and buy_price > 0):
        raise DegenerateInputError(f"Buy price must be positive, got {buy_price!r}")

    risk_amount = principal * inputs.risk_percentage / 100
    risk_per_share = buy_price - inputs.stop_loss
    if not risk_per_share > 0:
        raise DegenerateInputError(
            f"Risk per share must be positive (buy={buy_price!r}, stop={inputs.stop_loss!r})"
        )

    risk_quotient = risk_amount / risk_per_share
    capital_quotient = principal / buy_price
    if not all(map(math.isfinite, (risk_amount, risk_quotient, capital_quotient))):
        raise DegenerateInputError(
            f"Inputs too large to size (principal={principal!r}, buy={buy_price!r}, stop={inputs.stop_loss!r})"
        )

    risk_based_shares = math.floor(risk_quotient)
    capital_based_shares = math.floor(capital_quotient)
    final_shares = max(min(risk_based_shares, capital_based_shares), 0)

    max_lots, max_shares = round_to_lots(final_shares, rule)

    position_value = max_shares * buy_price
    actual_risk_amount = max_shares * risk_per_share
    return PositionSizing(
        risk_amount=risk_amount,
        risk_per_share=risk_per_share,
        risk_based_shares=risk_based_shares,
        capital_based_shares=capital_based_shares,
        final_share_count_pre_lot=final_shares,
        max_lots=max_lots,
        max_shares=max_shares,
        position_value=position_value,
        position_size_percentage=position_value / principal * 100,
        actual_risk_amount=actual_risk_amount,
        actual_risk_percentage=actual_risk_amount / principal * 100,
    )


def round_to_lots(shares: int, rule: MarketRule) -> tuple[Optional[int], int]:
    """Truncate a share count to whole lots; lots are None for markets without lots."""
    if not rule.uses_lots:
        return None, shares
    if rule.lot_size <= 0:
        raise DegenerateInputError(f"Lot size must be positive for market {rule.code}")
    lots = shares // rule.lot_size
    return lots, lots * rule.lot_size
