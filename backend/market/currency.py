from __future__ import annotations

from typing import Optional

from backend.risk.markets import MARKET_RULES, DEFAULT_MARKET, MarketRule, normalize_market_code
from backend.risk.risk_engine import CalculationResult
from backend.risk.validation import ValidatedInput


def format_currency(amount: float, market_code: Optional[str]) -> str:
    """Render an amount with the market's currency symbol, e.g. ``RM2,000.00``."""
    rule = MARKET_RULES.get(normalize_market_code(market_code)) or MARKET_RULES[DEFAULT_MARKET]
    sign = "-" if amount < 0 else ""
    return f"{sign}{rule.currency_symbol}{abs(amount):,.2f}"


def format_percentage(value: float, digits: int = 2) -> str:
    return f"{value:.{digits}f}%"


def format_trade_plan(
    inputs: ValidatedInput,
    rule: MarketRule,
    result: CalculationResult,
) -> Optional[str]:
    """
    Build the one-paragraph trading plan shown under a valid result.

    Returns None when no shares can be bought.
    """
    if not result.is_valid:
        return None

    buy = format_currency(inputs.buy_price, rule.code)
    stop = format_currency(inputs.stop_loss, rule.code)
    loss = format_currency(result.actual_risk_amount, rule.code)
    if rule.uses_lots:
        size = f"{result.max_lots:,} lots ({result.max_shares:,} shares)"
    else:
        size = f"{result.max_shares:,} shares"
    return (
        f"Buy {size} at {buy} per share. "
        f"Set stop loss at {stop}. "
        f"If stopped out, your actual loss will be {loss} "
        f"(which is {format_percentage(result.actual_risk_percentage)} of your capital)."
    )
