"""Shared test fixtures: a small directory and scripted collaborators."""

import pytest

from src.px_directory.domain.cache import PerplexCache
from src.px_directory.domain.models import PerpMarket, Pool, Token
from src.px_messaging.domain.models import PollArgs
from tests.fakes import (
    ACCOUNT_ID,
    BASE_TOKEN_ID,
    MARKET_ID,
    POOL_ID,
    QUOTE_TOKEN_ID,
    FakeSigner,
    FrozenClock,
)


@pytest.fixture
def base_token() -> Token:
    return Token(id=BASE_TOKEN_ID, name="Trunk", ticker="TRUNK", denomination=9)


@pytest.fixture
def quote_token() -> Token:
    return Token(id=QUOTE_TOKEN_ID, name="Quantum Arweave", ticker="QAR", denomination=12)


@pytest.fixture
def pool(base_token: Token, quote_token: Token) -> Pool:
    return Pool(id=POOL_ID, token_base=base_token, token_quote=quote_token, fee_rate=0.0)


@pytest.fixture
def perp_market() -> PerpMarket:
    return PerpMarket(
        id=MARKET_ID,
        account_id=ACCOUNT_ID,
        base_ticker="BTC",
        base_denomination=8,
        quote_denomination=6,
        min_price_tick_size=1_000_000,  # 1.0
        min_quantity_tick_size=100_000,  # 0.001 BTC
        oracle_price=60_000_000_000,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def cache(
    base_token: Token, quote_token: Token, pool: Pool, perp_market: PerpMarket, clock: FrozenClock
) -> PerplexCache:
    cache = PerplexCache(clock=clock)
    cache.set_tokens([base_token, quote_token])
    cache.set_pools([pool])
    cache.set_perp_markets([perp_market])
    return cache


@pytest.fixture
def poll_args() -> PollArgs:
    return PollArgs(max_retries=3, retry_after_ms=100)


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()
