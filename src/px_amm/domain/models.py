"""AMM domain models."""

from dataclasses import dataclass

from src.px_directory.domain.models import Token, TokenQuantity


@dataclass(frozen=True)
class Swap:
    """Settled swap, read from the pool's outbound transfer."""

    id: str  # id of the submitted transfer
    quantity_in: TokenQuantity
    quantity_out: TokenQuantity
    fees: TokenQuantity  # charged in the output token
    price: float  # human-facing ratio only, never used in arithmetic

    @property
    def token_in(self) -> Token:
        return self.quantity_in.token

    @property
    def token_out(self) -> Token:
        return self.quantity_out.token
