"""Lazy directory fetches into the session cache.

Each fetch is a no-op once its part of the directory is populated, whether
from a cold snapshot or an earlier fetch.
"""

import asyncio
import logging

from src.px_directory.domain.cache import PerplexCache
from src.px_directory.infrastructure.perplex_api import PerplexApi

logger = logging.getLogger(__name__)


class DirectoryService:
    def __init__(self, cache: PerplexCache, api: PerplexApi) -> None:
        self._cache = cache
        self._api = api

    async def fetch_tokens_infos(self) -> None:
        if self._cache.has_tokens:
            return
        self._cache.set_tokens(await self._api.fetch_tokens())

    async def fetch_pools_infos(self) -> None:
        if self._cache.has_pools:
            return
        self._cache.set_pools(await self._api.fetch_pools())

    async def fetch_perp_markets(self) -> None:
        if self._cache.has_perp_markets:
            return
        self._cache.set_perp_markets(await self._api.fetch_perp_markets())

    async def initialize(self) -> None:
        await asyncio.gather(
            self.fetch_tokens_infos(),
            self.fetch_pools_infos(),
            self.fetch_perp_markets(),
        )
        logger.info(
            "Directory ready: %d token(s), %d pool(s), %d perp market(s)",
            len(self._cache.get_tokens()),
            len(self._cache.get_pools()),
            len(self._cache.get_perp_markets()),
        )
