"""Pydantic schemas for directory data crossing the SDK boundary.

Two sources:
  - cold cache snapshots: {tokens, pools, perpMarkets}, each optional
  - exchange metadata API payloads (ApiPool, ApiPerpMarket), whose decimal
    strings are converted to base units here

Field names are camelCase on the wire and snake_case in Python.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from src.px_common.quantities import decimal_to_int
from src.px_directory.domain.models import ARWEAVE_ID_PATTERN, PerpMarket, Pool, Token

ArweaveId = Annotated[str, Field(pattern=ARWEAVE_ID_PATTERN)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Cold cache
# ---------------------------------------------------------------------------


class TokenSchema(CamelModel):
    id: ArweaveId
    name: str
    ticker: str
    denomination: int = Field(ge=0)
    logo: ArweaveId | None = None

    def to_domain(self) -> Token:
        return Token(
            id=self.id,
            name=self.name,
            ticker=self.ticker,
            denomination=self.denomination,
            logo=self.logo,
        )

    @classmethod
    def from_domain(cls, token: Token) -> "TokenSchema":
        return cls(
            id=token.id,
            name=token.name,
            ticker=token.ticker,
            denomination=token.denomination,
            logo=token.logo,
        )


class PoolSchema(CamelModel):
    id: ArweaveId
    fee_rate: float = Field(ge=0, le=1)
    token_base: TokenSchema
    token_quote: TokenSchema

    @model_validator(mode="after")
    def distinct_tokens(self) -> "PoolSchema":
        if self.token_base.id == self.token_quote.id:
            raise ValueError("tokenBase and tokenQuote must be different tokens")
        return self

    def to_domain(self) -> Pool:
        return Pool(
            id=self.id,
            token_base=self.token_base.to_domain(),
            token_quote=self.token_quote.to_domain(),
            fee_rate=self.fee_rate,
        )

    @classmethod
    def from_domain(cls, pool: Pool) -> "PoolSchema":
        return cls(
            id=pool.id,
            fee_rate=pool.fee_rate,
            token_base=TokenSchema.from_domain(pool.token_base),
            token_quote=TokenSchema.from_domain(pool.token_quote),
        )


class PerpMarketSchema(CamelModel):
    id: ArweaveId
    account_id: ArweaveId
    base_ticker: str
    base_denomination: int = Field(ge=0)
    quote_denomination: int = Field(ge=0)
    min_price_tick_size: int = Field(gt=0)
    min_quantity_tick_size: int = Field(gt=0)
    oracle_price: int = Field(ge=0)
    maker_fee_rate: float = 0.0
    taker_fee_rate: float = 0.0

    def to_domain(self) -> PerpMarket:
        return PerpMarket(**self.model_dump())

    @classmethod
    def from_domain(cls, market: PerpMarket) -> "PerpMarketSchema":
        return cls(
            id=market.id,
            account_id=market.account_id,
            base_ticker=market.base_ticker,
            base_denomination=market.base_denomination,
            quote_denomination=market.quote_denomination,
            min_price_tick_size=market.min_price_tick_size,
            min_quantity_tick_size=market.min_quantity_tick_size,
            oracle_price=market.oracle_price,
            maker_fee_rate=market.maker_fee_rate,
            taker_fee_rate=market.taker_fee_rate,
        )


class ColdCacheSchema(CamelModel):
    tokens: list[TokenSchema] = Field(default_factory=list)
    pools: list[PoolSchema] = Field(default_factory=list)
    perp_markets: list[PerpMarketSchema] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Exchange metadata API payloads
# ---------------------------------------------------------------------------


class ApiPool(CamelModel):
    id: ArweaveId
    fee_rate: float = Field(ge=0, le=1)
    base: TokenSchema
    quote: TokenSchema
    lp_token: TokenSchema | None = None

    def to_domain(self) -> Pool:
        return PoolSchema(
            id=self.id,
            fee_rate=self.fee_rate,
            token_base=self.base,
            token_quote=self.quote,
        ).to_domain()


class ApiMarketBase(CamelModel):
    ticker: str
    denomination: int = Field(ge=0)
    logo: str | None = None


class ApiMarketQuote(CamelModel):
    id: ArweaveId
    denomination: int = Field(ge=0)


class ApiPerpMarket(CamelModel):
    id: ArweaveId
    min_price_tick_size: str
    min_quantity_tick_size: str
    maker_fee_rate: float = 0.0
    taker_fee_rate: float = 0.0
    oracle_price: int = Field(ge=0)
    base: ApiMarketBase
    quote: ApiMarketQuote

    def to_domain(self) -> PerpMarket:
        """Tick sizes arrive as decimals; the quote token id is the clearing account."""
        return PerpMarketSchema(
            id=self.id,
            account_id=self.quote.id,
            base_ticker=self.base.ticker,
            base_denomination=self.base.denomination,
            quote_denomination=self.quote.denomination,
            min_price_tick_size=decimal_to_int(
                self.min_price_tick_size, self.quote.denomination
            ),
            min_quantity_tick_size=decimal_to_int(
                self.min_quantity_tick_size, self.base.denomination
            ),
            oracle_price=self.oracle_price,
            maker_fee_rate=self.maker_fee_rate,
            taker_fee_rate=self.taker_fee_rate,
        ).to_domain()
