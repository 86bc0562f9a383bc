import asyncio

from fastapi import APIRouter, Depends, HTTPException

from backend.api.errors import error_response, validation_error_response
from backend.core.logging import get_logger
from backend.market.currency import format_currency, format_trade_plan
from backend.risk.markets import list_markets
from backend.risk.risk_engine import PositionSizingError
from backend.trading.calculator import RiskCalculator
from backend.trading.schemas import (
    CalculationResponse,
    CalculatorRequest,
    ErrorResponse,
    FormattedAmounts,
    MarketRuleResponse,
    ValidationErrorResponse,
)

router = APIRouter(prefix="/api/calculator", tags=["calculator"])

_calculator: RiskCalculator | None = None
logger = get_logger(__name__)


def configure_calculator(calculator: RiskCalculator) -> None:
    global _calculator
    _calculator = calculator


def get_calculator() -> RiskCalculator:
    if _calculator is None:
        raise HTTPException(status_code=500, detail="Risk calculator not configured")
    return _calculator


@router.get("/markets", response_model=list[MarketRuleResponse])
async def markets():
    """Return the lot and currency rules for every supported market."""
    return [
        MarketRuleResponse(
            code=rule.code,
            name=rule.name,
            lot_size=rule.lot_size,
            uses_lots=rule.uses_lots,
            currency_symbol=rule.currency_symbol,
            currency_code=rule.currency_code,
            note=rule.note or None,
        )
        for rule in list_markets()
    ]


@router.post(
    "/position-size",
    response_model=CalculationResponse,
    responses={
        400: {"model": ValidationErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def position_size(request: CalculatorRequest, calculator: RiskCalculator = Depends(get_calculator)):
    """Size a position from raw form values."""
    try:
        outcome = await asyncio.to_thread(calculator.calculate, request.to_form())
    except PositionSizingError as exc:
        logger.exception(
            "calculator_request_failed",
            extra={"event": "calculator_request_failed", "market": request.market, "error": str(exc)},
        )
        return error_response(status_code=500, code="sizing_error", detail=str(exc))
    except Exception:
        logger.exception(
            "calculator_request_failed",
            extra={"event": "calculator_request_failed", "market": request.market},
        )
        return error_response(status_code=500, code="unexpected_error", detail="Unexpected error. Check server logs.")

    if not outcome.ok:
        messages = {name: err.message for name, err in outcome.errors.items()}
        codes = {name: err.code for name, err in outcome.errors.items()}
        return validation_error_response(messages, codes)

    result = outcome.result
    rule = outcome.rule
    return CalculationResponse(
        market=rule.code,
        risk_amount=result.risk_amount,
        risk_per_share=result.risk_per_share,
        risk_based_shares=result.risk_based_shares,
        capital_based_shares=result.capital_based_shares,
        final_share_count_pre_lot=result.final_share_count_pre_lot,
        max_lots=result.max_lots,
        max_shares=result.max_shares,
        position_value=result.position_value,
        position_size_percentage=result.position_size_percentage,
        actual_risk_amount=result.actual_risk_amount,
        actual_risk_percentage=result.actual_risk_percentage,
        is_valid=result.is_valid,
        warnings=list(result.warnings),
        formatted=FormattedAmounts(
            risk_amount=format_currency(result.risk_amount, rule.code),
            position_value=format_currency(result.position_value, rule.code),
            actual_risk_amount=format_currency(result.actual_risk_amount, rule.code),
        ),
        summary=format_trade_plan(outcome.inputs, rule, result),
    )
