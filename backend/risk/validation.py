from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from backend.risk.markets import DEFAULT_MARKET


OUT_OF_RANGE = "out_of_range"
INVALID_ORDERING = "invalid_ordering"

# Wire (camelCase) name -> attribute name.
FIELD_NAMES = {
    "principal": "principal",
    "riskPercentage": "risk_percentage",
    "buyPrice": "buy_price",
    "stopLoss": "stop_loss",
    "market": "market",
}

_MESSAGES = {
    "principal": "Principal must be greater than 0",
    "riskPercentage": "Risk percentage must be greater than 0 and at most 100",
    "buyPrice": "Buy price must be greater than 0",
    "stopLoss": "Stop loss must be greater than 0",
}
_ORDERING_MESSAGE = "Stop loss must be lower than buy price"


@dataclass(frozen=True)
class CalculatorInput:
    """Raw form values exactly as the user typed them."""

    principal: str = ""
    risk_percentage: str = ""
    buy_price: str = ""
    stop_loss: str = ""
    market: str = DEFAULT_MARKET

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "CalculatorInput":
        values: dict[str, str] = {}
        for wire_name, attr in FIELD_NAMES.items():
            value = raw.get(wire_name, raw.get(attr))
            if value is None:
                continue
            values[attr] = value if isinstance(value, str) else str(value)
        return cls(**values)


@dataclass(frozen=True)
class ValidatedInput:
    principal: float
    risk_percentage: float
    buy_price: float
    stop_loss: float
    market: str = DEFAULT_MARKET


@dataclass(frozen=True)
class FieldError:
    code: str
    message: str


@dataclass(frozen=True)
class ValidationOutcome:
    value: Optional[ValidatedInput] = None
    errors: Mapping[str, FieldError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors

    def messages(self) -> dict[str, str]:
        return {name: err.message for name, err in self.errors.items()}

    def codes(self) -> dict[str, str]:
        return {name: err.code for name, err in self.errors.items()}


def parse_decimal(raw: Optional[str]) -> Optional[float]:
    """Parse a locale-invariant decimal string; None for blank or non-finite input."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def validate(raw: Mapping[str, Any] | CalculatorInput) -> ValidationOutcome:
    """
    Check every calculator field and collect all failures.

    Each numeric field is checked on its own; the stop/buy ordering check runs
    whenever both prices parse and replaces any earlier error on ``stopLoss``.
    """
    form = raw if isinstance(raw, CalculatorInput) else CalculatorInput.from_mapping(raw)

    principal = parse_decimal(form.principal)
    risk_pct = parse_decimal(form.risk_percentage)
    buy_price = parse_decimal(form.buy_price)
    stop_loss = parse_decimal(form.stop_loss)

    errors: dict[str, FieldError] = {}
    if principal is None or principal <= 0:
        errors["principal"] = FieldError(OUT_OF_RANGE, _MESSAGES["principal"])
    if risk_pct is None or risk_pct <= 0 or risk_pct > 100:
        errors["riskPercentage"] = FieldError(OUT_OF_RANGE, _MESSAGES["riskPercentage"])
    if buy_price is None or buy_price <= 0:
        errors["buyPrice"] = FieldError(OUT_OF_RANGE, _MESSAGES["buyPrice"])
    if stop_loss is None or stop_loss <= 0:
        errors["stopLoss"] = FieldError(OUT_OF_RANGE, _MESSAGES["stopLoss"])
    if buy_price is not None and stop_loss is not None and stop_loss >= buy_price:
        errors["stopLoss"] = FieldError(INVALID_ORDERING, _ORDERING_MESSAGE)

    if errors:
        return ValidationOutcome(errors=errors)
    return ValidationOutcome(
        value=ValidatedInput(
            principal=principal,
            risk_percentage=risk_pct,
            buy_price=buy_price,
            stop_loss=stop_loss,
            market=form.market,
        )
    )
