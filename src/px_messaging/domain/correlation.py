"""Find the effect of a submitted message in the indexer.

A write is fire-and-forget: submission returns a message id, and its effects
become visible in the indexer some time later (or never). The functions here
poll the indexer with a conjunctive tag filter until a caller-supplied
validator accepts a message, or the retry budget runs out.

Two pagination strategies:
  - look_for_message: ingestion-time watermark. Each round queries
    `ingested_at >= watermark` and the watermark advances to the highest
    timestamp seen, so it carries across rounds.
  - look_for_message_paginated: cursor pagination. Each round follows `after`
    cursors until the last page, then sleeps; the cursor carries across rounds.

Both return the first accepted message in indexer order, or None after
exactly `max_retries` rounds. Validators should correlate on a tag unique to
the submission (Pushed-For, X-Order-Id) to avoid false positives. A validator
may also accept an error-tagged message so the caller can fail fast instead of
waiting out the budget.

Indexer outages during a round count as an empty round.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from src.px_common.datetime_utils import unix_seconds, utc_now
from src.px_common.errors import UpstreamUnavailableError
from src.px_messaging.domain.models import AoMessage, PollArgs, TagFilter
from src.px_messaging.domain.repository import IndexerProtocol

logger = logging.getLogger(__name__)

MessageValidator = Callable[[AoMessage], bool]
Sleep = Callable[[float], Awaitable[None]]


def _first_valid(
    messages: Iterable[AoMessage],
    is_message_valid: MessageValidator,
    seen: set[str],
) -> AoMessage | None:
    for message in messages:
        if message.id in seen:
            continue
        seen.add(message.id)
        if is_message_valid(message):
            return message
    return None


async def look_for_message(
    indexer: IndexerProtocol,
    tags_filter: Sequence[TagFilter],
    is_message_valid: MessageValidator,
    poll_args: PollArgs,
    *,
    min_ingested_at: int | None = None,
    sleep: Sleep = asyncio.sleep,
) -> AoMessage | None:
    """Poll with an advancing ingestion-time watermark."""
    watermark = min_ingested_at if min_ingested_at is not None else unix_seconds(utc_now())
    seen: set[str] = set()

    for attempt in range(1, poll_args.max_retries + 1):
        try:
            messages = await indexer.find_since(tags_filter, watermark)
        except UpstreamUnavailableError as exc:
            logger.warning("Indexer unavailable (attempt %d): %s", attempt, exc.message)
            messages = []

        found = _first_valid(messages, is_message_valid, seen)
        if found is not None:
            logger.debug("Matched message %s after %d attempt(s)", found.id, attempt)
            return found

        timestamps = [m.ingested_at for m in messages if m.ingested_at is not None]
        if timestamps:
            watermark = max(watermark, *timestamps)

        if attempt < poll_args.max_retries:
            await sleep(poll_args.delay_seconds)

    logger.debug("No matching message after %d attempts", poll_args.max_retries)
    return None


async def look_for_message_paginated(
    indexer: IndexerProtocol,
    tags_filter: Sequence[TagFilter],
    is_message_valid: MessageValidator,
    poll_args: PollArgs,
    *,
    sleep: Sleep = asyncio.sleep,
) -> AoMessage | None:
    """Poll with forward cursor pagination, draining every page each round."""
    cursor: str | None = None
    seen: set[str] = set()

    for attempt in range(1, poll_args.max_retries + 1):
        while True:
            try:
                page = await indexer.find_page(tags_filter, cursor)
            except UpstreamUnavailableError as exc:
                logger.warning("Indexer unavailable (attempt %d): %s", attempt, exc.message)
                break

            found = _first_valid(page.messages, is_message_valid, seen)
            if found is not None:
                logger.debug("Matched message %s after %d attempt(s)", found.id, attempt)
                return found

            if page.end_cursor is None:
                break
            cursor = page.end_cursor
            if not page.has_next_page:
                break

        if attempt < poll_args.max_retries:
            await sleep(poll_args.delay_seconds)

    logger.debug("No matching message after %d attempts", poll_args.max_retries)
    return None
