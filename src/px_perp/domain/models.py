"""Perp domain models. Pure dataclasses, no transport dependency.

Prices are quote base units per one whole base unit; sizes are base units.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.px_common.enums import TERMINAL_ORDER_STATUSES, OrderSide, OrderStatus, OrderType


@dataclass(frozen=True)
class PerpOrder:
    id: str
    market_id: str
    type: OrderType
    side: OrderSide
    status: OrderStatus
    original_quantity: int
    executed_quantity: int = 0
    executed_value: int = 0
    initial_price: int | None = None  # None for market orders

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    @property
    def remaining_quantity(self) -> int:
        return self.original_quantity - self.executed_quantity


@dataclass(frozen=True)
class PerpPosition:
    market_id: str
    size: int
    funding_quantity: int
    entry_price: int


@dataclass(frozen=True)
class PriceLevel:
    price: int
    size: int


@dataclass(frozen=True)
class OrderBook:
    market_id: str
    asks: list[PriceLevel] = field(default_factory=list)  # best (lowest) first
    bids: list[PriceLevel] = field(default_factory=list)  # best (highest) first

    @property
    def best_ask(self) -> PriceLevel | None:
        return self.asks[0] if self.asks else None

    @property
    def best_bid(self) -> PriceLevel | None:
        return self.bids[0] if self.bids else None


@dataclass(frozen=True)
class MarginDetails:
    """Account-level margin figures, in settlement-token base units (may be negative)."""

    total_margin: int
    margin_before_liquidation: int
    margin_available_for_orders: int
    required_initial_margin: int
    required_maintenance_margin: int
    unrealized_pnl: int


@dataclass(frozen=True)
class AccountSummary:
    account_id: str
    wallet: str
    collaterals: dict[str, int]  # token_id -> base units
    positions: dict[str, PerpPosition]  # market_id -> position
    orders: dict[str, dict[str, PerpOrder]]  # market_id -> order_id -> order
    margin_details: MarginDetails
    fetched_at: datetime


@dataclass(frozen=True)
class CollateralDeposit:
    id: str  # id of the submitted transfer
    account_id: str
    token_id: str
    quantity: int


@dataclass(frozen=True)
class FundingRate:
    market_id: str
    rate: str | None  # decimal string as published; None before the first funding
