"""AMM application service — reserves, balances and swaps.

Swap flow:
  1. resolve pool and input token from the directory
  2. compute the minimum output bound (given, or from fresh reserves + slippage)
  3. submit a Transfer of the input token to the pool
  4. liveness check: the transfer's own result must credit the pool
     (skipped with a warning when the CU cannot be reached)
  5. poll the indexer for the pool's outbound Transfer pushed for our id
  6. classify: sent back to the input token = refund, otherwise settled

After a settled swap the pool reserves and the wallet's balances of both
tokens are invalidated, so the next read re-fetches them.
"""

import asyncio
import logging
import re

from pydantic import ValidationError

from src.px_amm.application.schemas import ExpectedOutputParams, ReservesPayload, SwapParams
from src.px_amm.domain.models import Swap
from src.px_amm.domain.pricing import compute_swap_output, opposite_token
from src.px_common.datetime_utils import unix_seconds, utc_now
from src.px_common.enums import Action, OperationType
from src.px_common.errors import (
    ConfirmationTimeoutError,
    InvalidTokenError,
    RemoteFailureError,
    UpstreamUnavailableError,
)
from src.px_common.result import Result, capture
from src.px_directory.domain.cache import PerplexCache
from src.px_directory.domain.models import (
    Pool,
    PoolReserves,
    Token,
    TokenBalance,
    TokenQuantity,
)
from src.px_messaging.domain.correlation import Sleep, look_for_message
from src.px_messaging.domain.models import AoMessage, PollArgs, TagFilter, make_tags
from src.px_messaging.domain.repository import IndexerProtocol, MessengerProtocol, Signer

logger = logging.getLogger(__name__)

_BALANCE_RE = re.compile(r"\d+")


class AmmService:
    def __init__(
        self,
        cache: PerplexCache,
        messenger: MessengerProtocol,
        indexer: IndexerProtocol,
        poll_args: PollArgs,
        reserves_ttl_ms: int,
        balances_ttl_ms: int,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._messenger = messenger
        self._indexer = indexer
        self._poll_args = poll_args
        self._reserves_ttl_ms = reserves_ttl_ms
        self._balances_ttl_ms = balances_ttl_ms
        self._sleep = sleep

    # --- Reserves ---

    async def update_pool_reserves(self, pool: Pool) -> PoolReserves:
        cached = self._cache.get_pool_reserves(pool.id)
        if cached is not None and self._cache.is_fresh(cached.fetched_at, self._reserves_ttl_ms):
            return cached

        result = await self._messenger.dryrun(pool.id, make_tags({"Action": Action.RESERVES.value}))
        if not result.messages:
            raise UpstreamUnavailableError(f"Failed to update reserves for {pool.id}")

        try:
            payload = ReservesPayload.model_validate_json(result.messages[0].data)
        except ValidationError as exc:
            raise UpstreamUnavailableError(f"Malformed reserves for {pool.id}: {exc}") from exc

        reserves: dict[str, int] = {}
        for token in (pool.token_base, pool.token_quote):
            if token.id not in payload.root:
                raise UpstreamUnavailableError(f"Reserves of {pool.id} miss token {token.id}")
            reserves[token.id] = payload.root[token.id]

        logger.debug("Reserves of %s updated: %s", pool.ticker, reserves)
        return self._cache.set_pool_reserves(pool.id, reserves)

    async def update_all_pool_reserves(self) -> dict[str, Result[PoolReserves]]:
        """Refresh every known pool concurrently; failures stay per pool."""
        pools = self._cache.get_pools()
        results = await asyncio.gather(*(capture(self.update_pool_reserves(p)) for p in pools))
        return {pool.id: result for pool, result in zip(pools, results)}

    # --- Balances ---

    async def update_token_balance(self, token: Token, wallet: str) -> TokenBalance:
        cached = self._cache.get_token_balance(token.id, wallet)
        if cached is not None and self._cache.is_fresh(cached.fetched_at, self._balances_ttl_ms):
            return cached

        result = await self._messenger.dryrun(
            token.id, make_tags({"Action": Action.BALANCE.value, "Recipient": wallet})
        )
        if not result.messages:
            raise UpstreamUnavailableError(f"Failed to fetch {token.ticker} balance of {wallet}")

        reply = result.messages[0]
        raw = reply.tags.get("Balance", reply.data)
        if not _BALANCE_RE.fullmatch(raw or ""):
            raise UpstreamUnavailableError(f"Malformed {token.ticker} balance: {raw!r}")

        return self._cache.set_token_balance(token.id, wallet, int(raw))

    async def update_all_token_balances(self, wallet: str) -> dict[str, Result[TokenBalance]]:
        tokens = self._cache.get_tokens()
        results = await asyncio.gather(
            *(capture(self.update_token_balance(t, wallet)) for t in tokens)
        )
        return {token.id: result for token, result in zip(tokens, results)}

    # --- Swaps ---

    def get_swap_expected_output(self, params: ExpectedOutputParams) -> TokenQuantity:
        """Minimum output from the cached reserves; never fetches."""
        pool = self._cache.get_pool_by_id(params.pool_id)
        token = self._cache.get_token_by_id(params.token_id)
        output = compute_swap_output(
            pool,
            self._cache.get_pool_reserves(pool.id),
            token,
            params.quantity,
            params.slippage_tolerance,
        )
        return TokenQuantity(opposite_token(pool, token), output)

    async def swap(self, params: SwapParams, signer: Signer) -> Swap:
        pool = self._cache.get_pool_by_id(params.pool_id)
        token = self._cache.get_token_by_id(params.token_id)
        if not pool.has_token(token.id):
            raise InvalidTokenError(token.id, pool.id)
        token_out = opposite_token(pool, token)

        if params.min_expected_output is not None:
            min_expected_output = params.min_expected_output
        else:
            reserves = await self.update_pool_reserves(pool)
            min_expected_output = compute_swap_output(
                pool, reserves, token, params.quantity, params.slippage_tolerance
            )

        started_at = unix_seconds(utc_now())
        transfer_id = await self._messenger.submit(
            token.id,
            make_tags({
                "Action": Action.TRANSFER.value,
                "Quantity": params.quantity,
                "Recipient": pool.id,
                "X-Operation-Type": OperationType.SWAP.value,
                "X-Minimum-Expected-Output": min_expected_output,
            }),
            signer,
        )
        logger.info(
            "Swap submitted: %s %s → %s (min out %d), transfer %s",
            params.quantity, token.ticker, token_out.ticker, min_expected_output, transfer_id,
        )

        try:
            await self._check_transfer_credited(transfer_id, token, pool)
        except UpstreamUnavailableError as exc:
            # CU unreachable: the indexer decides the outcome
            logger.warning(
                "Could not read result of transfer %s, polling anyway: %s",
                transfer_id, exc.message,
            )

        confirmation = await look_for_message(
            self._indexer,
            [
                TagFilter.of("Pushed-For", transfer_id),
                TagFilter.of("From-Process", pool.id),
                TagFilter.of("Action", Action.TRANSFER.value),
            ],
            lambda msg: msg.tags.get("Pushed-For") == transfer_id,
            self._poll_args,
            min_ingested_at=started_at,
            sleep=self._sleep,
        )
        if confirmation is None:
            logger.warning(
                "Swap %s not confirmed after %d polls", transfer_id, self._poll_args.max_retries
            )
            raise ConfirmationTimeoutError(
                "Swap", transfer_id, await self._describe_unconfirmed(transfer_id)
            )

        if confirmation.to == token.id:
            detail = confirmation.tags.get("X-Error") or "Swap has failed, input was refunded"
            logger.warning("Swap %s refunded: %s", transfer_id, detail)
            raise RemoteFailureError(detail, transfer_id)

        self._invalidate_after_trade(pool, signer.address)
        try:
            swap = _swap_from_confirmation(
                transfer_id, token, params.quantity, token_out, confirmation
            )
        except UpstreamUnavailableError as exc:
            raise UpstreamUnavailableError(
                f"Swap settled but its confirmation is unreadable: {exc.detail}", transfer_id
            ) from exc
        logger.info(
            "Swap %s settled: %s %s → %s %s",
            transfer_id, swap.quantity_in.to_readable(), token.ticker,
            swap.quantity_out.to_readable(), token_out.ticker,
        )
        return swap

    async def _check_transfer_credited(self, transfer_id: str, token: Token, pool: Pool) -> None:
        """The token process must have credited the pool with our transfer."""
        result = await self._messenger.result(transfer_id, token.id)
        if result.error:
            raise RemoteFailureError(result.error, transfer_id)

        for message in result.messages:
            if message.tags.get("Action") == Action.TRANSFER_ERROR.value:
                raise RemoteFailureError(
                    message.tags.get("Error") or "Transfer was rejected", transfer_id
                )

        credited = any(
            m.tags.get("Action") == Action.CREDIT_NOTICE.value and m.to == pool.id
            for m in result.messages
        )
        if not credited:
            raise RemoteFailureError("Transfer was not credited to the pool", transfer_id)

    async def _describe_unconfirmed(self, transfer_id: str) -> str | None:
        """Tell a transfer the gateway never saw from one the pool never answered."""
        try:
            transfer = await self._indexer.get_by_id(transfer_id)
        except UpstreamUnavailableError as exc:
            logger.warning("Lookup of transfer %s failed: %s", transfer_id, exc.message)
            return None
        if transfer is None:
            return "transfer not indexed yet"
        return "transfer indexed, no reply from the pool yet"

    def _invalidate_after_trade(self, pool: Pool, wallet: str) -> None:
        self._cache.invalidate_pool_reserves(pool.id)
        self._cache.invalidate_token_balance(pool.token_base.id, wallet)
        self._cache.invalidate_token_balance(pool.token_quote.id, wallet)


def _swap_from_confirmation(
    transfer_id: str,
    token_in: Token,
    quantity_in: int,
    token_out: Token,
    confirmation: AoMessage,
) -> Swap:
    price = confirmation.tags.get("X-Price", "0")
    try:
        price_value = float(price)
    except ValueError as exc:
        raise UpstreamUnavailableError(
            f"Malformed X-Price on {confirmation.id}: {price!r}"
        ) from exc

    return Swap(
        id=transfer_id,
        quantity_in=TokenQuantity(token_in, quantity_in),
        quantity_out=TokenQuantity(token_out, confirmation.int_tag("Quantity")),
        fees=TokenQuantity(token_out, confirmation.int_tag("X-Fees", default=0)),
        price=price_value,
    )
