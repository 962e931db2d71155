"""Scripted collaborators and ids shared by unit and integration tests."""

import asyncio
from collections import defaultdict
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone

from src.px_messaging.domain.models import (
    AoMessage,
    MessagePage,
    ProcessResult,
    SignedDataItem,
    Tag,
    TagFilter,
)


def make_id(prefix: str) -> str:
    """43-char Arweave-style id, readable in assertion output."""
    return prefix.ljust(43, "x")


BASE_TOKEN_ID = make_id("TRUNK")
QUOTE_TOKEN_ID = make_id("QAR")
POOL_ID = make_id("POOL-TRUNK-QAR")
MARKET_ID = make_id("MARKET-BTC")
ACCOUNT_ID = make_id("ACCOUNT-USD")
COLLATERAL_TOKEN_ID = make_id("USDC")
WALLET = make_id("WALLET")
TRANSFER_ID = make_id("TRANSFER")


def make_message(
    message_id: str,
    *,
    to: str = WALLET,
    from_address: str = POOL_ID,
    tags: dict[str, str] | None = None,
    data: str = "",
    ingested_at: int | None = None,
) -> AoMessage:
    return AoMessage(
        id=message_id,
        from_address=from_address,
        to=to,
        tags=tags or {},
        data=data,
        ingested_at=ingested_at,
    )


class FakeIndexer:
    """Scripted indexer: each call returns the next scripted round.

    An exception in the script is raised instead of returned. Once the
    script is exhausted every call returns an empty result.
    """

    def __init__(
        self,
        rounds: Sequence[list[AoMessage] | Exception] = (),
        pages: Sequence[MessagePage | Exception] = (),
    ) -> None:
        self.rounds = list(rounds)
        self.pages = list(pages)
        self.indexed: dict[str, AoMessage] = {}
        self.since_calls: list[tuple[list[TagFilter], int]] = []
        self.page_calls: list[tuple[list[TagFilter], str | None]] = []

    async def find_since(
        self, tags_filter: Sequence[TagFilter], min_ingested_at: int
    ) -> list[AoMessage]:
        self.since_calls.append((list(tags_filter), min_ingested_at))
        item = self.rounds.pop(0) if self.rounds else []
        if isinstance(item, Exception):
            raise item
        return item

    async def find_page(
        self, tags_filter: Sequence[TagFilter], after: str | None
    ) -> MessagePage:
        self.page_calls.append((list(tags_filter), after))
        item = self.pages.pop(0) if self.pages else MessagePage([], None, False)
        if isinstance(item, Exception):
            raise item
        return item

    async def get_by_id(self, message_id: str) -> AoMessage | None:
        return self.indexed.get(message_id)


class RoutingIndexer:
    """Indexer answering each poll by the first value of the tag filter.

    `script[message_id][n]` is what the n-th poll (1-based) for that id
    returns; `noise` is returned with every reply, whatever the filter.
    Every call yields to the event loop first so concurrent polls interleave.
    """

    def __init__(
        self,
        script: Mapping[str, Mapping[int, list[AoMessage]]],
        noise: Sequence[AoMessage] = (),
    ) -> None:
        self.script = script
        self.noise = list(noise)
        self.polls: dict[str, int] = defaultdict(int)
        self.order: list[str] = []

    def _reply(self, tags_filter: Sequence[TagFilter]) -> list[AoMessage]:
        message_id = tags_filter[0].values[0]
        self.polls[message_id] += 1
        self.order.append(message_id)
        return self.noise + self.script.get(message_id, {}).get(self.polls[message_id], [])

    async def find_since(
        self, tags_filter: Sequence[TagFilter], min_ingested_at: int
    ) -> list[AoMessage]:
        await asyncio.sleep(0)
        return self._reply(tags_filter)

    async def find_page(
        self, tags_filter: Sequence[TagFilter], after: str | None
    ) -> MessagePage:
        await asyncio.sleep(0)
        return MessagePage(self._reply(tags_filter), None, False)

    async def get_by_id(self, message_id: str) -> AoMessage | None:
        return None


class FakeMessenger:
    """Records submissions; dryrun and result replies are looked up by target / id."""

    def __init__(self, message_id: str = TRANSFER_ID, next_ids: Sequence[str] = ()) -> None:
        self.message_id = message_id
        self.next_ids = list(next_ids)
        self.submitted: list[tuple[str, dict[str, str]]] = []
        self.dryrun_calls: list[tuple[str, dict[str, str]]] = []
        self.dryrun_replies: dict[str, ProcessResult | Exception] = {}
        self.results: dict[str, ProcessResult | Exception] = {}

    async def submit(
        self, target: str, tags: Sequence[Tag], signer: object, data: str = ""
    ) -> str:
        self.submitted.append((target, {t.name: t.value for t in tags}))
        return self.next_ids.pop(0) if self.next_ids else self.message_id

    async def dryrun(self, target: str, tags: Sequence[Tag]) -> ProcessResult:
        self.dryrun_calls.append((target, {t.name: t.value for t in tags}))
        reply = self.dryrun_replies.get(target, ProcessResult(messages=[]))
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def result(self, message_id: str, process_id: str) -> ProcessResult:
        reply = self.results.get(message_id, ProcessResult(messages=[]))
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeSigner:
    address = WALLET

    async def sign(self, target: str, tags: Sequence[Tag], data: str) -> SignedDataItem:
        return SignedDataItem(id=TRANSFER_ID, raw=b"signed-data-item")


class FrozenClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += timedelta(milliseconds=ms)


async def no_sleep(seconds: float) -> None:
    return None


def credited_result(pool_id: str = POOL_ID) -> ProcessResult:
    """CU result of a transfer the token process accepted."""
    return ProcessResult(
        messages=[
            make_message(make_id("DEBIT"), to=WALLET, tags={"Action": "Debit-Notice"}),
            make_message(make_id("CREDIT"), to=pool_id, tags={"Action": "Credit-Notice"}),
        ]
    )




async def yield_sleep(seconds: float) -> None:
    """Sleep that only hands control to other tasks."""
    await asyncio.sleep(0)
