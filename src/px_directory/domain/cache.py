"""PerplexCache — per-session in-memory store.

Directory (tokens, pools, perp markets):
  - seeded from a cold snapshot or fetched lazily; fetches are no-ops once populated
  - lookups by id or by exact, case-sensitive ticker
    (pools by "BASE/QUOTE", perp markets by base ticker)

Live data (pool reserves, token balances):
  - cache-aside with a TTL: fresh if now - fetched_at < ttl
  - entries are replaced whole, last writer wins; never persisted

serialize() returns the cold snapshot only; live data is always re-fetched.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from src.px_common.datetime_utils import elapsed_ms, utc_now
from src.px_common.errors import (
    PerpMarketNotFoundError,
    PoolNotFoundError,
    TokenNotFoundError,
)
from src.px_directory.application.schemas import (
    ColdCacheSchema,
    PerpMarketSchema,
    PoolSchema,
    TokenSchema,
)
from src.px_directory.domain.models import (
    PerpMarket,
    Pool,
    PoolReserves,
    Token,
    TokenBalance,
)

logger = logging.getLogger(__name__)


class PerplexCache:
    def __init__(
        self,
        data: dict[str, Any] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._clock = clock
        self._tokens: dict[str, Token] = {}
        self._token_ids_by_ticker: dict[str, str] = {}
        self._pools: dict[str, Pool] = {}
        self._pool_ids_by_ticker: dict[str, str] = {}
        self._perp_markets: dict[str, PerpMarket] = {}
        self._perp_market_ids_by_ticker: dict[str, str] = {}
        self._pool_reserves: dict[str, PoolReserves] = {}
        self._token_balances: dict[tuple[str, str], TokenBalance] = {}
        self._tokens_loaded = False

        if data:
            cold = ColdCacheSchema.model_validate(data)
            if cold.tokens:
                self.set_tokens(t.to_domain() for t in cold.tokens)
            self.set_pools(p.to_domain() for p in cold.pools)
            self.set_perp_markets(m.to_domain() for m in cold.perp_markets)

    def now(self) -> datetime:
        return self._clock()

    def serialize(self) -> dict[str, Any]:
        """Cold snapshot, JSON-serializable and accepted by the constructor."""
        return ColdCacheSchema(
            tokens=[TokenSchema.from_domain(t) for t in self._tokens.values()],
            pools=[PoolSchema.from_domain(p) for p in self._pools.values()],
            perp_markets=[PerpMarketSchema.from_domain(m) for m in self._perp_markets.values()],
        ).model_dump(by_alias=True)

    # --- Directory population ---

    @property
    def has_tokens(self) -> bool:
        return self._tokens_loaded

    @property
    def has_pools(self) -> bool:
        return bool(self._pools)

    @property
    def has_perp_markets(self) -> bool:
        return bool(self._perp_markets)

    def set_tokens(self, tokens: Iterable[Token]) -> None:
        for token in tokens:
            self._index_token(token)
        self._tokens_loaded = True

    def _index_token(self, token: Token) -> None:
        self._tokens[token.id] = token
        self._token_ids_by_ticker[token.ticker] = token.id

    def set_pools(self, pools: Iterable[Pool]) -> None:
        for pool in pools:
            self._pools[pool.id] = pool
            self._pool_ids_by_ticker[pool.ticker] = pool.id
            # Pool tokens are resolvable even before the token list is fetched
            for token in (pool.token_base, pool.token_quote):
                if token.id not in self._tokens:
                    self._index_token(token)

    def set_perp_markets(self, markets: Iterable[PerpMarket]) -> None:
        for market in markets:
            self._perp_markets[market.id] = market
            self._perp_market_ids_by_ticker[market.base_ticker] = market.id

    # --- Directory lookups ---

    def get_token_by_id(self, token_id: str) -> Token:
        token = self._tokens.get(token_id)
        if token is None:
            raise TokenNotFoundError(token_id)
        return token

    def get_token(self, ticker: str) -> Token:
        token_id = self._token_ids_by_ticker.get(ticker)
        if token_id is None:
            raise TokenNotFoundError(ticker)
        return self._tokens[token_id]

    def get_tokens(self) -> list[Token]:
        return list(self._tokens.values())

    def get_pool_by_id(self, pool_id: str) -> Pool:
        pool = self._pools.get(pool_id)
        if pool is None:
            raise PoolNotFoundError(pool_id)
        return pool

    def get_pool(self, ticker: str) -> Pool:
        pool_id = self._pool_ids_by_ticker.get(ticker)
        if pool_id is None:
            raise PoolNotFoundError(ticker)
        return self._pools[pool_id]

    def get_pools(self) -> list[Pool]:
        return list(self._pools.values())

    def get_perp_market_by_id(self, market_id: str) -> PerpMarket:
        market = self._perp_markets.get(market_id)
        if market is None:
            raise PerpMarketNotFoundError(market_id)
        return market

    def get_perp_market(self, base_ticker: str) -> PerpMarket:
        market_id = self._perp_market_ids_by_ticker.get(base_ticker)
        if market_id is None:
            raise PerpMarketNotFoundError(base_ticker)
        return self._perp_markets[market_id]

    def get_perp_markets(self) -> list[PerpMarket]:
        return list(self._perp_markets.values())

    # --- Live data ---

    def is_fresh(self, fetched_at: datetime, ttl_ms: int) -> bool:
        return elapsed_ms(fetched_at, self.now()) < ttl_ms

    def get_pool_reserves(self, pool_id: str) -> PoolReserves | None:
        return self._pool_reserves.get(pool_id)

    def set_pool_reserves(self, pool_id: str, reserves: dict[str, int]) -> PoolReserves:
        entry = PoolReserves(pool_id=pool_id, reserves=dict(reserves), fetched_at=self.now())
        self._pool_reserves[pool_id] = entry
        return entry

    def invalidate_pool_reserves(self, pool_id: str) -> None:
        self._pool_reserves.pop(pool_id, None)

    def get_token_balance(self, token_id: str, wallet: str) -> TokenBalance | None:
        return self._token_balances.get((token_id, wallet))

    def set_token_balance(self, token_id: str, wallet: str, quantity: int) -> TokenBalance:
        entry = TokenBalance(
            token_id=token_id, wallet=wallet, quantity=quantity, fetched_at=self.now()
        )
        self._token_balances[(token_id, wallet)] = entry
        return entry

    def invalidate_token_balance(self, token_id: str, wallet: str) -> None:
        self._token_balances.pop((token_id, wallet), None)
