"""Pydantic schemas for AMM calls and AMM process payloads."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, RootModel, StrictInt, model_validator

from src.px_directory.application.schemas import ArweaveId

PositiveQuantity = Annotated[StrictInt, Field(gt=0)]


class SwapParams(BaseModel):
    """Caller parameters of a swap; malformed values raise ValidationError.

    Exactly one of min_expected_output / slippage_tolerance is given. With a
    slippage tolerance the bound is computed from freshly fetched reserves.
    """

    model_config = ConfigDict(frozen=True)

    pool_id: ArweaveId
    token_id: ArweaveId
    quantity: PositiveQuantity
    min_expected_output: Annotated[StrictInt, Field(ge=0)] | None = None
    slippage_tolerance: float | None = None

    @model_validator(mode="after")
    def one_output_bound(self) -> "SwapParams":
        if (self.min_expected_output is None) == (self.slippage_tolerance is None):
            raise ValueError("Provide exactly one of min_expected_output or slippage_tolerance")
        return self


class ExpectedOutputParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    pool_id: ArweaveId
    token_id: ArweaveId
    quantity: PositiveQuantity
    slippage_tolerance: float = 0.0


class ReservesPayload(RootModel[dict[str, int]]):
    """Data of a pool's Reserves reply: {token_id: base units}."""

    @model_validator(mode="after")
    def non_negative(self) -> "ReservesPayload":
        for token_id, quantity in self.root.items():
            if quantity < 0:
                raise ValueError(f"negative reserve for {token_id}")
        return self
