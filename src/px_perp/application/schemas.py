"""Pydantic schemas for perp calls and perp process / API payloads."""

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

from src.px_common.enums import OrderSide, OrderStatus, OrderType
from src.px_directory.application.schemas import ArweaveId, CamelModel
from src.px_perp.domain.models import (
    MarginDetails,
    OrderBook,
    PerpOrder,
    PerpPosition,
    PriceLevel,
)

PositiveInt = Annotated[StrictInt, Field(gt=0)]


# ---------------------------------------------------------------------------
# Caller parameters
# ---------------------------------------------------------------------------


class PlacePerpOrderParams(BaseModel):
    """Market orders carry no price; Limit and Limit-Maker orders must."""

    model_config = ConfigDict(frozen=True)

    market_id: ArweaveId
    type: OrderType
    side: OrderSide
    size: PositiveInt
    price: PositiveInt | None = None
    reduce_only: bool = False

    @model_validator(mode="after")
    def price_matches_type(self) -> "PlacePerpOrderParams":
        if self.type == OrderType.MARKET and self.price is not None:
            raise ValueError("Market orders do not take a price")
        if self.type != OrderType.MARKET and self.price is None:
            raise ValueError(f"{self.type.value} orders require a price")
        return self


class CancelOrderParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_id: ArweaveId
    order_id: ArweaveId


class DepositCollateralParams(BaseModel):
    """Transfer `quantity` of `token_id` into the clearing account `account_id`."""

    model_config = ConfigDict(frozen=True)

    account_id: ArweaveId
    token_id: ArweaveId
    quantity: PositiveInt


# ---------------------------------------------------------------------------
# Account-Summary reply
# ---------------------------------------------------------------------------


def _empty_list_to_dict(value: Any) -> Any:
    # The process encodes empty maps as empty JSON arrays
    if isinstance(value, list) and not value:
        return {}
    return value


class SummaryPosition(CamelModel):
    size: int
    funding_qty: int
    entry_price: int

    def to_domain(self, market_id: str) -> PerpPosition:
        return PerpPosition(
            market_id=market_id,
            size=self.size,
            funding_quantity=self.funding_qty,
            entry_price=self.entry_price,
        )


class SummaryOrder(CamelModel):
    id: str
    from_: str = Field(alias="from")
    index: int | None = None
    original_qty: int
    executed_qty: int
    executed_value: int
    type: OrderType
    status: OrderStatus
    side: OrderSide
    price: int

    def to_domain(self, market_id: str) -> PerpOrder:
        return PerpOrder(
            id=self.id,
            market_id=market_id,
            type=self.type,
            side=self.side,
            status=self.status,
            original_quantity=self.original_qty,
            executed_quantity=self.executed_qty,
            executed_value=self.executed_value,
            initial_price=self.price or None,
        )


class SummaryMarginDetails(CamelModel):
    total_margin: int
    margin_before_liquidation: int
    margin_available_for_orders: int
    required_initial_margin: int
    required_maintenance_margin: int
    unrealized_pnl: int = Field(alias="unrealizedPnL")

    def to_domain(self) -> MarginDetails:
        return MarginDetails(**self.model_dump())


class AccountSummaryResponse(CamelModel):
    collaterals: dict[str, int] = Field(default_factory=dict)
    positions: dict[str, SummaryPosition] = Field(default_factory=dict)
    orders: dict[str, dict[str, SummaryOrder]] = Field(default_factory=dict)
    margin_details: SummaryMarginDetails

    @field_validator("collaterals", "positions", mode="before")
    @classmethod
    def empty_array_is_empty_map(cls, v: Any) -> Any:
        return _empty_list_to_dict(v)

    @field_validator("orders", mode="before")
    @classmethod
    def empty_order_arrays_are_empty_maps(cls, v: Any) -> Any:
        v = _empty_list_to_dict(v)
        if isinstance(v, dict):
            return {market_id: _empty_list_to_dict(orders) for market_id, orders in v.items()}
        return v


# ---------------------------------------------------------------------------
# Exchange metadata API payloads
# ---------------------------------------------------------------------------


class ApiPriceLevel(CamelModel):
    price: int = Field(ge=0)
    size: int = Field(ge=0)


class ApiMarketDepth(CamelModel):
    asks: list[ApiPriceLevel] = Field(default_factory=list)
    bids: list[ApiPriceLevel] = Field(default_factory=list)

    def to_domain(self, market_id: str) -> OrderBook:
        return OrderBook(
            market_id=market_id,
            asks=[PriceLevel(price=a.price, size=a.size) for a in self.asks],
            bids=[PriceLevel(price=b.price, size=b.size) for b in self.bids],
        )


class ApiPositionMarket(CamelModel):
    id: str


class ApiPosition(CamelModel):
    size: int
    funding_quantity: int
    entry_price: int
    market: ApiPositionMarket

    def to_domain(self) -> PerpPosition:
        return PerpPosition(
            market_id=self.market.id,
            size=self.size,
            funding_quantity=self.funding_quantity,
            entry_price=self.entry_price,
        )
