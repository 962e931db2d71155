"""Interface contracts for the transport layer."""
from collections.abc import Sequence
from typing import Protocol

from src.px_messaging.domain.models import (
    AoMessage,
    MessagePage,
    ProcessResult,
    SignedDataItem,
    Tag,
    TagFilter,
)


class Signer(Protocol):
    """Credential able to sign a submission; never inspected by the SDK."""

    @property
    def address(self) -> str: ...

    async def sign(self, target: str, tags: Sequence[Tag], data: str) -> SignedDataItem: ...


class IndexerProtocol(Protocol):
    async def find_since(
        self, tags_filter: Sequence[TagFilter], min_ingested_at: int
    ) -> list[AoMessage]: ...

    async def find_page(
        self, tags_filter: Sequence[TagFilter], after: str | None
    ) -> MessagePage: ...

    async def get_by_id(self, message_id: str) -> AoMessage | None: ...


class MessengerProtocol(Protocol):
    async def submit(
        self, target: str, tags: Sequence[Tag], signer: Signer, data: str = ""
    ) -> str: ...

    async def dryrun(self, target: str, tags: Sequence[Tag]) -> ProcessResult: ...

    async def result(self, message_id: str, process_id: str) -> ProcessResult: ...
