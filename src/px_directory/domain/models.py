"""Pure dataclasses for instruments and cached state."""

import re
from dataclasses import dataclass
from datetime import datetime

from src.px_common.quantities import decimal_to_int, int_to_decimal

ARWEAVE_ID_PATTERN = r"^[a-zA-Z0-9_-]{43}$"

_ARWEAVE_ID_RE = re.compile(r"[a-zA-Z0-9_-]{43}")


def _check_id(field: str, value: str) -> None:
    if not isinstance(value, str) or not _ARWEAVE_ID_RE.fullmatch(value):
        raise ValueError(f"{field} must be a 43-char Arweave id, got {value!r}")


@dataclass(frozen=True)
class Token:
    id: str
    name: str
    ticker: str
    denomination: int
    logo: str | None = None

    def __post_init__(self) -> None:
        _check_id("Token id", self.id)
        if self.denomination < 0:
            raise ValueError(f"denomination must be non-negative, got {self.denomination}")

    def from_readable(self, quantity: str) -> "TokenQuantity":
        return TokenQuantity(self, decimal_to_int(quantity, self.denomination))


@dataclass(frozen=True)
class TokenQuantity:
    token: Token
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(f"quantity must be non-negative, got {self.quantity}")

    def _check_same_token(self, other: "TokenQuantity") -> None:
        if other.token.id != self.token.id:
            raise ValueError(
                f"Cannot combine quantities of {self.token.ticker} and {other.token.ticker}"
            )

    def __add__(self, other: "TokenQuantity") -> "TokenQuantity":
        self._check_same_token(other)
        return TokenQuantity(self.token, self.quantity + other.quantity)

    def __sub__(self, other: "TokenQuantity") -> "TokenQuantity":
        self._check_same_token(other)
        return TokenQuantity(self.token, self.quantity - other.quantity)

    def to_readable(self) -> str:
        return int_to_decimal(self.quantity, self.token.denomination)


@dataclass(frozen=True)
class Pool:
    id: str
    token_base: Token
    token_quote: Token
    fee_rate: float  # fraction, 0.003 = 0.3%

    def __post_init__(self) -> None:
        _check_id("Pool id", self.id)
        if self.token_base.id == self.token_quote.id:
            raise ValueError(f"Pool {self.id} pairs token {self.token_base.id} with itself")
        if not 0 <= self.fee_rate <= 1:
            raise ValueError(f"fee_rate must be between 0 and 1, got {self.fee_rate}")

    @property
    def ticker(self) -> str:
        return f"{self.token_base.ticker}/{self.token_quote.ticker}"

    def has_token(self, token_id: str) -> bool:
        return token_id in (self.token_base.id, self.token_quote.id)


@dataclass(frozen=True)
class PerpMarket:
    id: str
    account_id: str  # clearing-account process, issuer of the settlement token
    base_ticker: str
    base_denomination: int
    quote_denomination: int
    min_price_tick_size: int
    min_quantity_tick_size: int
    oracle_price: int
    maker_fee_rate: float = 0.0
    taker_fee_rate: float = 0.0

    def __post_init__(self) -> None:
        _check_id("Perp market id", self.id)
        _check_id("Perp market account id", self.account_id)
        if self.base_denomination < 0 or self.quote_denomination < 0:
            raise ValueError(f"Perp market {self.id} has a negative denomination")
        if self.min_price_tick_size <= 0 or self.min_quantity_tick_size <= 0:
            raise ValueError(f"Perp market {self.id} tick sizes must be positive")


@dataclass(frozen=True)
class PoolReserves:
    """Snapshot of a pool's two balances; always replaced as a whole."""

    pool_id: str
    reserves: dict[str, int]  # token_id -> base units
    fetched_at: datetime

    def of(self, token_id: str) -> int | None:
        return self.reserves.get(token_id)


@dataclass(frozen=True)
class TokenBalance:
    token_id: str
    wallet: str
    quantity: int
    fetched_at: datetime
