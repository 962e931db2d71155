"""PerplexApi — directory reads from the exchange metadata GraphQL API."""

import logging

from pydantic import ValidationError

from src.px_common.errors import InvalidFormatError, UpstreamUnavailableError
from src.px_common.graphql import GraphQLClient, gql
from src.px_directory.application.schemas import ApiPerpMarket, ApiPool, TokenSchema
from src.px_directory.domain.models import PerpMarket, Pool, Token

logger = logging.getLogger(__name__)

_TOKEN_FRAGMENT = gql("""
    fragment TokenFragment on Token {
        id
        name
        ticker
        denomination
        logo
    }
""")

GET_TOKENS_QUERY = gql(f"""
    {_TOKEN_FRAGMENT}

    query tokens {{
        tokens {{
            ...TokenFragment
        }}
    }}
""")

GET_POOLS_QUERY = gql(f"""
    {_TOKEN_FRAGMENT}

    query pools {{
        ammPools {{
            id
            feeRate
            base {{
                ...TokenFragment
            }}
            quote {{
                ...TokenFragment
            }}
            lpToken {{
                ...TokenFragment
            }}
        }}
    }}
""")

GET_PERP_MARKETS_QUERY = gql("""
    query perpMarkets {
        markets(marketType: PERP) {
            ... on PerpMarket {
                id
                minPriceTickSize
                minQuantityTickSize
                makerFeeRate
                takerFeeRate
                oraclePrice
                base {
                    ticker
                    denomination
                    logo
                }
                quote {
                    id
                    denomination
                }
            }
        }
    }
""")


class PerplexApi:
    def __init__(self, graphql: GraphQLClient) -> None:
        self._graphql = graphql

    async def fetch_tokens(self) -> list[Token]:
        data = await self._graphql.query(GET_TOKENS_QUERY)
        try:
            tokens = [TokenSchema.model_validate(t).to_domain() for t in data["tokens"]]
        except (KeyError, TypeError, ValidationError) as exc:
            raise UpstreamUnavailableError(f"Malformed tokens response: {exc}") from exc
        logger.debug("Fetched %d token(s)", len(tokens))
        return tokens

    async def fetch_pools(self) -> list[Pool]:
        data = await self._graphql.query(GET_POOLS_QUERY)
        try:
            pools = [ApiPool.model_validate(p).to_domain() for p in data["ammPools"]]
        except (KeyError, TypeError, ValidationError) as exc:
            raise UpstreamUnavailableError(f"Malformed pools response: {exc}") from exc
        logger.debug("Fetched %d pool(s)", len(pools))
        return pools

    async def fetch_perp_markets(self) -> list[PerpMarket]:
        data = await self._graphql.query(GET_PERP_MARKETS_QUERY)
        try:
            markets = [
                ApiPerpMarket.model_validate(m).to_domain()
                for m in data["markets"]
                if m  # non-perp union members come back empty
            ]
        except (KeyError, TypeError, ValidationError, InvalidFormatError) as exc:
            raise UpstreamUnavailableError(f"Malformed perp markets response: {exc}") from exc
        logger.debug("Fetched %d perp market(s)", len(markets))
        return markets
