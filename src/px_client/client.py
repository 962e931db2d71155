"""PerplexClient — session facade over the directory, AMM and perp services.

Usage:
    async with PerplexClient(PerplexClientConfig(), cache=cold_snapshot) as client:
        await client.initialize()
        pool = client.get_pool("QAR/USDC")
        result = await client.swap({...}, signer)

Lookups raise NotFoundError. Every other public operation returns a Result;
malformed parameters still raise pydantic.ValidationError.
"""

import asyncio
import logging
from typing import Any

import httpx

from src.px_amm.application.schemas import ExpectedOutputParams, SwapParams
from src.px_amm.application.service import AmmService
from src.px_amm.domain.models import Swap
from src.px_client.config import PerplexClientConfig
from src.px_common.graphql import GraphQLClient
from src.px_common.result import Result, returns_result
from src.px_directory.application.service import DirectoryService
from src.px_directory.domain.cache import PerplexCache
from src.px_directory.domain.models import (
    PerpMarket,
    Pool,
    PoolReserves,
    Token,
    TokenBalance,
    TokenQuantity,
)
from src.px_directory.infrastructure.perplex_api import PerplexApi
from src.px_messaging.domain.correlation import Sleep
from src.px_messaging.domain.models import PollArgs
from src.px_messaging.domain.repository import IndexerProtocol, MessengerProtocol, Signer
from src.px_messaging.infrastructure.ao_client import AoConnectClient
from src.px_messaging.infrastructure.gateway import GatewayIndexer
from src.px_perp.application.schemas import (
    CancelOrderParams,
    DepositCollateralParams,
    PlacePerpOrderParams,
)
from src.px_perp.application.service import PerpService
from src.px_perp.domain.models import (
    AccountSummary,
    CollateralDeposit,
    FundingRate,
    OrderBook,
    PerpOrder,
    PerpPosition,
)
from src.px_perp.infrastructure.perplex_api import PerpMarketDataApi

logger = logging.getLogger(__name__)


class PerplexClient:
    def __init__(
        self,
        config: PerplexClientConfig | None = None,
        cache: PerplexCache | dict[str, Any] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        messenger: MessengerProtocol | None = None,
        indexer: IndexerProtocol | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config or PerplexClientConfig()
        self.cache = cache if isinstance(cache, PerplexCache) else PerplexCache(cache)

        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.config.http_timeout_seconds)

        self._messenger = messenger or AoConnectClient(
            self.config.mu_url, self.config.cu_url, self._http
        )
        self._indexer = indexer or GatewayIndexer(
            GraphQLClient(self.config.gateway_url, self._http)
        )
        api_graphql = GraphQLClient(self.config.api_url, self._http)
        poll_args = PollArgs(
            max_retries=self.config.poll.max_retries,
            retry_after_ms=self.config.poll.retry_after_ms,
        )

        self.directory = DirectoryService(self.cache, PerplexApi(api_graphql))
        self.amm = AmmService(
            self.cache,
            self._messenger,
            self._indexer,
            poll_args,
            reserves_ttl_ms=self.config.amm.reserves_cache_ttl_ms,
            balances_ttl_ms=self.config.balances_cache_ttl_ms,
            sleep=sleep,
        )
        self.perp = PerpService(
            self.cache,
            self._messenger,
            self._indexer,
            PerpMarketDataApi(api_graphql),
            poll_args,
            account_summary_ttl_ms=self.config.perp.account_summary_ttl_ms,
            sleep=sleep,
        )

    async def __aenter__(self) -> "PerplexClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    @returns_result
    async def initialize(self) -> None:
        await self.directory.initialize()

    def serialize_cache(self) -> dict[str, Any]:
        return self.cache.serialize()

    # --- Lookups ---

    def get_token_by_id(self, token_id: str) -> Token:
        return self.cache.get_token_by_id(token_id)

    def get_token(self, ticker: str) -> Token:
        return self.cache.get_token(ticker)

    def get_pool_by_id(self, pool_id: str) -> Pool:
        return self.cache.get_pool_by_id(pool_id)

    def get_pool(self, ticker: str) -> Pool:
        return self.cache.get_pool(ticker)

    def get_perp_market_by_id(self, market_id: str) -> PerpMarket:
        return self.cache.get_perp_market_by_id(market_id)

    def get_perp_market(self, base_ticker: str) -> PerpMarket:
        return self.cache.get_perp_market(base_ticker)

    # --- AMM ---

    @returns_result
    async def update_pool_reserves(self, pool_id: str) -> PoolReserves:
        return await self.amm.update_pool_reserves(self.cache.get_pool_by_id(pool_id))

    async def update_all_pool_reserves(self) -> dict[str, Result[PoolReserves]]:
        return await self.amm.update_all_pool_reserves()

    @returns_result
    async def update_token_balance(self, token_id: str, wallet: str) -> TokenBalance:
        return await self.amm.update_token_balance(self.cache.get_token_by_id(token_id), wallet)

    async def update_all_token_balances(self, wallet: str) -> dict[str, Result[TokenBalance]]:
        return await self.amm.update_all_token_balances(wallet)

    async def get_swap_expected_output(
        self, params: ExpectedOutputParams | dict[str, Any]
    ) -> Result[TokenQuantity]:
        params = ExpectedOutputParams.model_validate(params)
        return await self._get_swap_expected_output(params)

    @returns_result
    async def _get_swap_expected_output(self, params: ExpectedOutputParams) -> TokenQuantity:
        return self.amm.get_swap_expected_output(params)

    async def swap(self, params: SwapParams | dict[str, Any], signer: Signer) -> Result[Swap]:
        params = SwapParams.model_validate(params)
        return await self._swap(params, signer)

    @returns_result
    async def _swap(self, params: SwapParams, signer: Signer) -> Swap:
        return await self.amm.swap(params, signer)

    # --- Perp ---

    async def place_order(
        self, params: PlacePerpOrderParams | dict[str, Any], signer: Signer
    ) -> Result[PerpOrder]:
        params = PlacePerpOrderParams.model_validate(params)
        return await self._place_order(params, signer)

    @returns_result
    async def _place_order(self, params: PlacePerpOrderParams, signer: Signer) -> PerpOrder:
        return await self.perp.place_order(params, signer)

    async def cancel_order(
        self, params: CancelOrderParams | dict[str, Any], signer: Signer
    ) -> Result[PerpOrder]:
        params = CancelOrderParams.model_validate(params)
        return await self._cancel_order(params, signer)

    @returns_result
    async def _cancel_order(self, params: CancelOrderParams, signer: Signer) -> PerpOrder:
        return await self.perp.cancel_order(params, signer)

    async def deposit_collateral(
        self, params: DepositCollateralParams | dict[str, Any], signer: Signer
    ) -> Result[CollateralDeposit]:
        params = DepositCollateralParams.model_validate(params)
        return await self._deposit_collateral(params, signer)

    @returns_result
    async def _deposit_collateral(
        self, params: DepositCollateralParams, signer: Signer
    ) -> CollateralDeposit:
        return await self.perp.deposit_collateral(params, signer)

    @returns_result
    async def get_account_summary(self, account_id: str, wallet: str) -> AccountSummary:
        return await self.perp.get_account_summary(account_id, wallet)

    @returns_result
    async def get_order_book(self, market_id: str) -> OrderBook:
        return await self.perp.get_order_book(market_id)

    @returns_result
    async def get_latest_funding_rate(self, market_id: str) -> FundingRate:
        return await self.perp.get_latest_funding_rate(market_id)

    @returns_result
    async def get_positions(self, wallet: str) -> list[PerpPosition]:
        return await self.perp.get_positions(wallet)
