from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from backend.core.logging import get_logger


logger = get_logger(__name__)


DEFAULT_MARKET = "MY"
UNKNOWN_MARKET = "unknown_market"


class UnknownMarketError(LookupError):
    """Raised for market codes outside the rules table when lookups are strict."""

    def __init__(self, code: Optional[str]) -> None:
        super().__init__(f"Unsupported market '{code}'")
        self.code = code


@dataclass(frozen=True)
class MarketRule:
    code: str
    name: str
    lot_size: int
    uses_lots: bool
    currency_symbol: str
    currency_code: str
    note: str = ""


MARKET_RULES: Mapping[str, MarketRule] = MappingProxyType(
    {
        "MY": MarketRule("MY", "Malaysia (KLSE)", 100, True, "RM", "MYR", "Standard for all stocks"),
        "SG": MarketRule("SG", "Singapore (SGX)", 100, True, "S$", "SGD", "Odd lots available"),
        "CN": MarketRule("CN", "China A-Shares", 100, True, "¥", "CNY", "A-shares standard"),
        "HK": MarketRule("HK", "Hong Kong (HKEX)", 100, True, "HK$", "HKD", "Board lots vary; check individual stocks"),
        "US": MarketRule("US", "United States (NYSE/NASDAQ)", 1, False, "$", "USD", "Any number of shares"),
    }
)


def normalize_market_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def is_supported_market(code: Optional[str]) -> bool:
    return normalize_market_code(code) in MARKET_RULES


def lookup_market(code: Optional[str], *, strict: bool = False) -> MarketRule:
    """
    Resolve a market code to its trading rule.

    Unknown codes resolve to the MY rule and log ``unknown_market_fallback``;
    with ``strict=True`` they raise ``UnknownMarketError`` instead.
    """
    clean = normalize_market_code(code)
    rule = MARKET_RULES.get(clean)
    if rule is not None:
        return rule
    if strict:
        raise UnknownMarketError(code)
    logger.warning(
        "unknown_market_fallback",
        extra={"event": "unknown_market_fallback", "market": code, "fallback": DEFAULT_MARKET},
    )
    return MARKET_RULES[DEFAULT_MARKET]


def list_markets() -> list[MarketRule]:
    return list(MARKET_RULES.values())
