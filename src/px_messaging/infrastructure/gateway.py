"""GatewayIndexer — IndexerProtocol over the Arweave GraphQL gateway.

Queries sort by INGESTED_AT_ASC so the first accepted message is the oldest.
"""
import logging
from collections.abc import Sequence
from typing import Any

from src.px_common.errors import UpstreamUnavailableError
from src.px_common.graphql import GraphQLClient, gql
from src.px_messaging.domain.models import AoMessage, MessagePage, TagFilter

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

_TRANSACTION_FRAGMENT = gql("""
    fragment TransactionFragment on Transaction {
        id
        ingested_at
        owner {
            address
        }
        recipient
        tags {
            name
            value
        }
    }
""")

GET_TRANSACTIONS_SINCE_QUERY = gql(f"""
    {_TRANSACTION_FRAGMENT}

    query transactions($tagsFilter: [TagFilter!]!, $min: Int!) {{
        transactions(
            first: {PAGE_SIZE},
            sort: INGESTED_AT_ASC,
            ingested_at: {{ min: $min }},
            tags: $tagsFilter
        ) {{
            edges {{
                cursor
                node {{
                    ...TransactionFragment
                }}
            }}
        }}
    }}
""")

GET_TRANSACTIONS_PAGE_QUERY = gql(f"""
    {_TRANSACTION_FRAGMENT}

    query transactions($tagsFilter: [TagFilter!]!, $after: String) {{
        transactions(
            first: {PAGE_SIZE},
            after: $after,
            sort: INGESTED_AT_ASC,
            tags: $tagsFilter
        ) {{
            pageInfo {{
                hasNextPage
            }}
            edges {{
                cursor
                node {{
                    ...TransactionFragment
                }}
            }}
        }}
    }}
""")

GET_TRANSACTION_BY_ID_QUERY = gql(f"""
    {_TRANSACTION_FRAGMENT}

    query transactionById($id: ID!) {{
        transaction(id: $id) {{
            ...TransactionFragment
        }}
    }}
""")


def _filter_variables(tags_filter: Sequence[TagFilter]) -> list[dict[str, Any]]:
    return [f.to_variables() for f in tags_filter]


def _parse_edges(data: dict[str, Any]) -> tuple[list[AoMessage], str | None]:
    try:
        edges = data["transactions"]["edges"]
        messages = [AoMessage.from_gateway(edge["node"]) for edge in edges]
        end_cursor = edges[-1]["cursor"] if edges else None
    except (KeyError, TypeError) as exc:
        raise UpstreamUnavailableError(f"Malformed gateway response: {exc}") from exc
    return messages, end_cursor


class GatewayIndexer:
    def __init__(self, graphql: GraphQLClient) -> None:
        self._graphql = graphql

    async def find_since(
        self, tags_filter: Sequence[TagFilter], min_ingested_at: int
    ) -> list[AoMessage]:
        data = await self._graphql.query(
            GET_TRANSACTIONS_SINCE_QUERY,
            {"tagsFilter": _filter_variables(tags_filter), "min": min_ingested_at},
        )
        messages, _ = _parse_edges(data)
        logger.debug("Gateway returned %d message(s) since %d", len(messages), min_ingested_at)
        return messages

    async def find_page(
        self, tags_filter: Sequence[TagFilter], after: str | None
    ) -> MessagePage:
        data = await self._graphql.query(
            GET_TRANSACTIONS_PAGE_QUERY,
            {"tagsFilter": _filter_variables(tags_filter), "after": after},
        )
        messages, end_cursor = _parse_edges(data)
        try:
            has_next_page = bool(data["transactions"]["pageInfo"]["hasNextPage"])
        except (KeyError, TypeError) as exc:
            raise UpstreamUnavailableError(f"Malformed gateway response: {exc}") from exc
        return MessagePage(messages=messages, end_cursor=end_cursor, has_next_page=has_next_page)

    async def get_by_id(self, message_id: str) -> AoMessage | None:
        data = await self._graphql.query(GET_TRANSACTION_BY_ID_QUERY, {"id": message_id})
        node = data.get("transaction")
        if not node:
            return None
        try:
            return AoMessage.from_gateway(node)
        except (KeyError, TypeError) as exc:
            raise UpstreamUnavailableError(f"Malformed gateway response: {exc}") from exc
