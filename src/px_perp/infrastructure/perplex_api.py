"""PerpMarketDataApi — perp reads from the exchange metadata GraphQL API."""

import logging

from pydantic import ValidationError

from src.px_common.errors import UpstreamUnavailableError
from src.px_common.graphql import GraphQLClient, gql
from src.px_perp.application.schemas import ApiMarketDepth, ApiPosition
from src.px_perp.domain.models import FundingRate, OrderBook, PerpPosition

logger = logging.getLogger(__name__)

POSITIONS_LIMIT = 100

GET_MARKET_DEPTH_QUERY = gql("""
    query marketDepth($marketId: ID!) {
        marketDepth(marketId: $marketId) {
            asks {
                price
                size
            }
            bids {
                price
                size
            }
        }
    }
""")

GET_LATEST_FUNDING_RATE_QUERY = gql("""
    query latestFundingRate($marketId: ID!) {
        latestFundingRate(marketId: $marketId)
    }
""")

GET_POSITIONS_QUERY = gql(f"""
    query positions($wallet: String!) {{
        positions(wallet: $wallet, limit: {POSITIONS_LIMIT}) {{
            size
            fundingQuantity
            entryPrice
            market {{
                id
            }}
        }}
    }}
""")


class PerpMarketDataApi:
    def __init__(self, graphql: GraphQLClient) -> None:
        self._graphql = graphql

    async def fetch_order_book(self, market_id: str) -> OrderBook:
        data = await self._graphql.query(GET_MARKET_DEPTH_QUERY, {"marketId": market_id})
        try:
            return ApiMarketDepth.model_validate(data["marketDepth"]).to_domain(market_id)
        except (KeyError, TypeError, ValidationError) as exc:
            raise UpstreamUnavailableError(
                f"Malformed market depth for {market_id}: {exc}"
            ) from exc

    async def fetch_latest_funding_rate(self, market_id: str) -> FundingRate:
        data = await self._graphql.query(GET_LATEST_FUNDING_RATE_QUERY, {"marketId": market_id})
        rate = data.get("latestFundingRate")
        return FundingRate(market_id=market_id, rate=str(rate) if rate is not None else None)

    async def fetch_positions(self, wallet: str) -> list[PerpPosition]:
        data = await self._graphql.query(GET_POSITIONS_QUERY, {"wallet": wallet})
        try:
            positions = [ApiPosition.model_validate(p).to_domain() for p in data["positions"]]
        except (KeyError, TypeError, ValidationError) as exc:
            raise UpstreamUnavailableError(f"Malformed positions for {wallet}: {exc}") from exc
        logger.debug("Fetched %d position(s) for %s", len(positions), wallet)
        return positions
