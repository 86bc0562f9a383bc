from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CalculatorRequest(CamelModel):
    principal: str = ""
    risk_percentage: str = ""
    buy_price: str = ""
    stop_loss: str = ""
    market: str = "MY"

    @field_validator("principal", "risk_percentage", "buy_price", "stop_loss", "market", mode="before")
    @classmethod
    def coerce_to_text(cls, value: Any) -> str:
        # Form fields arrive as text; JSON clients may still send numbers.
        if value is None:
            return ""
        if isinstance(value, bool):
            raise ValueError("expected a number or numeric string")
        return value if isinstance(value, str) else str(value)

    def to_form(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class FormattedAmounts(CamelModel):
    risk_amount: str
    position_value: str
    actual_risk_amount: str


class CalculationResponse(CamelModel):
    market: str
    risk_amount: float
    risk_per_share: float
    risk_based_shares: int
    capital_based_shares: int
    final_share_count_pre_lot: int
    max_lots: Optional[int] = None
    max_shares: int
    position_value: float
    position_size_percentage: float
    actual_risk_amount: float
    actual_risk_percentage: float
    is_valid: bool
    warnings: list[str] = []
    formatted: FormattedAmounts
    summary: Optional[str] = None
    validation_errors: dict[str, str] = {}


class MarketRuleResponse(CamelModel):
    code: str = Field(..., pattern=r"^[A-Z]{2}$")
    name: str
    lot_size: int = Field(..., gt=0)
    uses_lots: bool
    currency_symbol: str
    currency_code: str
    note: Optional[str] = None


class ValidationErrorResponse(CamelModel):
    error: str
    detail: str
    validation_errors: dict[str, str]
    context: Optional[dict] = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
    context: Optional[dict] = None
