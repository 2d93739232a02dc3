"""
Pydantic Validation Models

Order payloads for the phantom trade executor. Validation happens before
any state is touched, and failures are translated into Teenvest
ValidationError instances carrying the matching error code.
"""

from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ErrorCodes, ValidationError


class OrderSide(str, Enum):
    """Phantom orders only buy or sell."""

    BUY = "buy"
    SELL = "sell"


class PhantomOrder(BaseModel):
    """A validated buy or sell order against a phantom portfolio."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    symbol: str = Field(min_length=1, max_length=20, description="Ticker symbol")
    company_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("company_name", "companyName"),
    )
    side: OrderSide = Field(
        validation_alias=AliasChoices("side", "trade_type", "tradeType"),
    )
    shares: float = Field(gt=0, allow_inf_nan=False, description="Share quantity")
    price: float = Field(gt=0, allow_inf_nan=False, description="Fill price")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper()

    @field_validator("side", mode="before")
    @classmethod
    def normalize_side(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="before")
    @classmethod
    def default_company_name(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            name = data.get("company_name") or data.get("companyName")
            symbol = data.get("symbol")
            if not name and isinstance(symbol, str):
                data = {**data, "company_name": symbol.strip().upper()}
        return data

    @property
    def total(self) -> float:
        return self.shares * self.price


_FIELD_ERROR_CODES = {
    "symbol": ErrorCodes.VALIDATION_MISSING_SYMBOL,
    "price": ErrorCodes.VALIDATION_INVALID_PRICE,
}


def parse_order(order: Union[PhantomOrder, Mapping[str, Any]]) -> PhantomOrder:
    """
    Validate an order payload.

    Raises:
        ValidationError: If any field is missing or out of range
    """
    if isinstance(order, PhantomOrder):
        return order

    try:
        return PhantomOrder.model_validate(order)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field_name = str(first["loc"][0]) if first.get("loc") else ""
        if field_name in ("company_name", "companyName"):
            field_name = "company_name"
        error_code = _FIELD_ERROR_CODES.get(field_name, ErrorCodes.VALIDATION_INVALID_ORDER)
        raise ValidationError(
            error_code,
            detail=f"{field_name or 'order'}: {first['msg']}",
            context={"field": field_name, "error_count": e.error_count()},
        ) from e
