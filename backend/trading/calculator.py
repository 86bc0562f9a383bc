from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from backend.analytics.events import EventSink, NullEventSink, build_event_sink
from backend.core.config import Settings
from backend.core.logging import get_logger
from backend.risk import risk_engine
from backend.risk.advisories import DEFAULT_THRESHOLDS, WarningThresholds, generate_warnings
from backend.risk.markets import UNKNOWN_MARKET, MarketRule, UnknownMarketError, lookup_market
from backend.risk.validation import (
    CalculatorInput,
    FieldError,
    ValidatedInput,
    validate,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CalculatorOutcome:
    """Either a full result or field-level errors, never both."""

    inputs: Optional[ValidatedInput] = None
    rule: Optional[MarketRule] = None
    result: Optional[risk_engine.CalculationResult] = None
    errors: Mapping[str, FieldError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.result is not None


class RiskCalculator:
    """Coordinates validation, sizing, warnings and event reporting."""

    def __init__(
        self,
        *,
        thresholds: WarningThresholds = DEFAULT_THRESHOLDS,
        strict_markets: bool = False,
        event_sink: Optional[EventSink] = None,
    ) -> None:
        self.thresholds = thresholds
        self.strict_markets = strict_markets
        self.event_sink = event_sink or NullEventSink()

    @classmethod
    def from_settings(cls, settings: Settings, event_sink: Optional[EventSink] = None) -> "RiskCalculator":
        return cls(
            thresholds=WarningThresholds(
                high_risk_pct=settings.high_risk_pct_threshold,
                tight_stop_ratio=settings.tight_stop_ratio,
            ),
            strict_markets=settings.strict_markets(),
            event_sink=event_sink or build_event_sink(settings),
        )

    def calculate(self, raw: Mapping[str, Any] | CalculatorInput) -> CalculatorOutcome:
        validation = validate(raw)
        if not validation.ok:
            logger.info(
                "calculator_validation_failed",
                extra={"event": "calculator_validation_failed", "fields": validation.codes()},
            )
            return CalculatorOutcome(errors=validation.errors)

        inputs = validation.value
        try:
            rule = lookup_market(inputs.market, strict=self.strict_markets)
        except UnknownMarketError as exc:
            logger.info(
                "calculator_validation_failed",
                extra={"event": "calculator_validation_failed", "fields": {"market": UNKNOWN_MARKET}},
            )
            return CalculatorOutcome(errors={"market": FieldError(UNKNOWN_MARKET, str(exc))})

        sizing = risk_engine.size_position(inputs, rule)
        warnings = generate_warnings(inputs, rule, sizing, self.thresholds)
        result = risk_engine.CalculationResult.from_sizing(sizing, warnings)

        logger.info(
            "position_sized" if result.is_valid else "position_unaffordable",
            extra={
                "event": "position_sized" if result.is_valid else "position_unaffordable",
                "market": rule.code,
                "max_shares": result.max_shares,
                "risk_based_shares": result.risk_based_shares,
                "capital_based_shares": result.capital_based_shares,
                "warnings": len(result.warnings),
            },
        )
        self._track(inputs, rule)
        return CalculatorOutcome(inputs=inputs, rule=rule, result=result)

    def _track(self, inputs: ValidatedInput, rule: MarketRule) -> None:
        """Report a completed calculation; sink failures are logged and dropped."""
        try:
            self.event_sink.track(
                "risk_calculator",
                "calculate_risk",
                {
                    "principal": inputs.principal,
                    "riskPercentage": inputs.risk_percentage,
                    "market": rule.code,
                },
            )
        except Exception as exc:
            logger.warning(
                "analytics_track_failed",
                extra={"event": "analytics_track_failed", "error": str(exc)},
            )
