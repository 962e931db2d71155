"""Tests for DirectoryService and the metadata API readers behind it."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from src.px_common.errors import UpstreamUnavailableError
from src.px_common.graphql import GraphQLClient
from src.px_directory.application.service import DirectoryService
from src.px_directory.domain.cache import PerplexCache
from src.px_directory.domain.models import PerpMarket, Pool, Token
from src.px_directory.infrastructure.perplex_api import PerplexApi
from src.px_perp.infrastructure.perplex_api import PerpMarketDataApi
from tests.fakes import ACCOUNT_ID, BASE_TOKEN_ID, MARKET_ID, POOL_ID, QUOTE_TOKEN_ID, WALLET

API_URL = "https://api.test/graphql"

TRUNK = {"id": BASE_TOKEN_ID, "name": "Trunk", "ticker": "TRUNK", "denomination": 9, "logo": None}
QAR = {"id": QUOTE_TOKEN_ID, "name": "QAR", "ticker": "QAR", "denomination": 12, "logo": None}

PERP_MARKET = {
    "id": MARKET_ID,
    "minPriceTickSize": "1",
    "minQuantityTickSize": "0.001",
    "makerFeeRate": 0.0002,
    "takerFeeRate": 0.0005,
    "oraclePrice": 60_000_000_000,
    "base": {"ticker": "BTC", "denomination": 8, "logo": None},
    "quote": {"id": ACCOUNT_ID, "denomination": 6},
}


def _api_returning(data: dict) -> GraphQLClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": data})

    return GraphQLClient(API_URL, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
def api() -> AsyncMock:
    return AsyncMock(spec=PerplexApi)


class TestDirectoryService:
    @pytest.mark.asyncio
    async def test_initialize_fills_empty_cache(
        self,
        api: AsyncMock,
        base_token: Token,
        quote_token: Token,
        pool: Pool,
        perp_market: PerpMarket,
    ) -> None:
        api.fetch_tokens.return_value = [base_token, quote_token]
        api.fetch_pools.return_value = [pool]
        api.fetch_perp_markets.return_value = [perp_market]
        cache = PerplexCache()

        await DirectoryService(cache, api).initialize()

        assert cache.get_token("QAR") == quote_token
        assert cache.get_pool("TRUNK/QAR") == pool
        assert cache.get_perp_market("BTC") == perp_market

    @pytest.mark.asyncio
    async def test_populated_cache_is_not_refetched(
        self, api: AsyncMock, cache: PerplexCache
    ) -> None:
        await DirectoryService(cache, api).initialize()

        api.fetch_tokens.assert_not_awaited()
        api.fetch_pools.assert_not_awaited()
        api.fetch_perp_markets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_only_missing_sections_are_fetched(
        self, api: AsyncMock, pool: Pool, perp_market: PerpMarket
    ) -> None:
        api.fetch_tokens.return_value = []
        api.fetch_perp_markets.return_value = [perp_market]
        cache = PerplexCache()
        cache.set_pools([pool])

        await DirectoryService(cache, api).initialize()

        api.fetch_pools.assert_not_awaited()
        api.fetch_tokens.assert_awaited_once()
        assert cache.has_tokens
        assert cache.has_perp_markets

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates(self, api: AsyncMock) -> None:
        api.fetch_tokens.side_effect = UpstreamUnavailableError("API down")
        api.fetch_pools.return_value = []
        api.fetch_perp_markets.return_value = []

        with pytest.raises(UpstreamUnavailableError):
            await DirectoryService(PerplexCache(), api).fetch_tokens_infos()


class TestPerplexApi:
    @pytest.mark.asyncio
    async def test_fetch_tokens(self) -> None:
        tokens = await PerplexApi(_api_returning({"tokens": [TRUNK, QAR]})).fetch_tokens()
        assert [t.ticker for t in tokens] == ["TRUNK", "QAR"]
        assert tokens[1].denomination == 12

    @pytest.mark.asyncio
    async def test_fetch_pools(self) -> None:
        pools = await PerplexApi(
            _api_returning(
                {"ammPools": [{"id": POOL_ID, "feeRate": 0.003, "base": TRUNK, "quote": QAR}]}
            )
        ).fetch_pools()
        assert pools[0].ticker == "TRUNK/QAR"

    @pytest.mark.asyncio
    async def test_fetch_perp_markets_skips_other_market_types(self) -> None:
        markets = await PerplexApi(
            _api_returning({"markets": [PERP_MARKET, {}]})
        ).fetch_perp_markets()
        assert len(markets) == 1
        assert markets[0].min_price_tick_size == 1_000_000
        assert markets[0].min_quantity_tick_size == 100_000

    @pytest.mark.asyncio
    async def test_malformed_tick_size(self) -> None:
        bad = {**PERP_MARKET, "minPriceTickSize": "1e-3"}
        with pytest.raises(UpstreamUnavailableError, match="Malformed perp markets"):
            await PerplexApi(_api_returning({"markets": [bad]})).fetch_perp_markets()

    @pytest.mark.asyncio
    async def test_missing_section(self) -> None:
        with pytest.raises(UpstreamUnavailableError, match="Malformed tokens"):
            await PerplexApi(_api_returning({})).fetch_tokens()


class TestPerpMarketDataApi:
    @pytest.mark.asyncio
    async def test_order_book(self) -> None:
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "data": {
                        "marketDepth": {
                            "asks": [{"price": 61, "size": 1}],
                            "bids": [{"price": 60, "size": 3}, {"price": 59, "size": 1}],
                        }
                    }
                },
            )

        graphql = GraphQLClient(API_URL, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        book = await PerpMarketDataApi(graphql).fetch_order_book(MARKET_ID)

        assert seen["variables"] == {"marketId": MARKET_ID}
        assert book.best_bid.price == 60
        assert book.best_ask.size == 1

    @pytest.mark.asyncio
    async def test_funding_rate_before_first_funding(self) -> None:
        api = PerpMarketDataApi(_api_returning({"latestFundingRate": None}))
        rate = await api.fetch_latest_funding_rate(MARKET_ID)
        assert rate.rate is None

    @pytest.mark.asyncio
    async def test_funding_rate_kept_as_string(self) -> None:
        api = PerpMarketDataApi(_api_returning({"latestFundingRate": "0.000125"}))
        assert (await api.fetch_latest_funding_rate(MARKET_ID)).rate == "0.000125"

    @pytest.mark.asyncio
    async def test_positions(self) -> None:
        api = PerpMarketDataApi(
            _api_returning(
                {
                    "positions": [
                        {
                            "size": -100_000,
                            "fundingQuantity": 12,
                            "entryPrice": 60_000_000_000,
                            "market": {"id": MARKET_ID},
                        }
                    ]
                }
            )
        )
        positions = await api.fetch_positions(WALLET)
        assert positions[0].size == -100_000
        assert positions[0].market_id == MARKET_ID

    @pytest.mark.asyncio
    async def test_malformed_positions(self) -> None:
        api = PerpMarketDataApi(_api_returning({"positions": [{"size": 1}]}))
        with pytest.raises(UpstreamUnavailableError, match="Malformed positions"):
            await api.fetch_positions(WALLET)
