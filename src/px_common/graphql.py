"""GraphQL-over-HTTP transport shared by the metadata API and the indexer gateway."""

import logging
import re
import time
from typing import Any

import httpx

from src.px_common.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"(#.*)")
_WHITESPACE_RE = re.compile(r"\s+")


def gql(query: str) -> str:
    """Minify a query: strip comments and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", _COMMENT_RE.sub("", query)).strip()


class GraphQLClient:
    def __init__(self, url: str, client: httpx.AsyncClient) -> None:
        self.url = url
        self._client = client

    async def query(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """POST the query and return its `data` object.

        Raises UpstreamUnavailableError on transport errors, non-200 codes
        and responses without data.
        """
        start = time.perf_counter()
        try:
            response = await self._client.post(
                self.url,
                json={"query": query, "variables": variables or {}},
                headers={"Content-Type": "application/json"},
            )
        except httpx.RequestError as exc:
            logger.warning("GraphQL → %s NETWORK_ERROR: %s", self.url, exc)
            raise UpstreamUnavailableError(f"Request to {self.url} failed: {exc}") from exc

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("GraphQL → %s [%d] (%.0fms)", self.url, response.status_code, elapsed_ms)

        body = _json_or_none(response)
        if response.status_code != 200:
            error_message = _first_error_message(body) or "Server error"
            raise UpstreamUnavailableError(
                f"Server returned HTTP code {response.status_code}: {error_message}"
            )

        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            error_message = _first_error_message(body) or "Empty response"
            raise UpstreamUnavailableError(f"Server returned no data: {error_message}")
        return data


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _first_error_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get("message")
        return str(message) if message else None
    return None
