"""Perp application service — orders, collateral and account reads.

Writes go through the correlation protocol:
  place order  → Transfer(Quantity=0) to the clearing account, which forwards
                 it to the market; poll by X-Order-Id (cursor mode)
  cancel order → Cancel-Order to the market; poll by Pushed-For (cursor mode)
  deposit      → Transfer of collateral to the clearing account; poll by
                 Pushed-For (watermark mode), a refund carrying X-Error fails fast

Account summaries are cached per (account, wallet) with a TTL and dropped
after any write by that wallet.
"""

import asyncio
import logging

from pydantic import ValidationError

from src.px_common.datetime_utils import unix_seconds, utc_now
from src.px_common.enums import (
    TERMINAL_ORDER_STATUSES,
    Action,
    OperationType,
    OrderSide,
    OrderStatus,
    OrderType,
)
from src.px_common.errors import (
    ConfirmationTimeoutError,
    RemoteFailureError,
    UpstreamUnavailableError,
)
from src.px_directory.domain.cache import PerplexCache
from src.px_directory.domain.models import PerpMarket
from src.px_messaging.domain.correlation import (
    Sleep,
    look_for_message,
    look_for_message_paginated,
)
from src.px_messaging.domain.models import AoMessage, PollArgs, TagFilter, make_tags
from src.px_messaging.domain.repository import IndexerProtocol, MessengerProtocol, Signer
from src.px_perp.application.schemas import (
    AccountSummaryResponse,
    CancelOrderParams,
    DepositCollateralParams,
    PlacePerpOrderParams,
)
from src.px_perp.domain.models import (
    AccountSummary,
    CollateralDeposit,
    FundingRate,
    OrderBook,
    PerpOrder,
    PerpPosition,
)
from src.px_perp.domain.ticks import validate_order_ticks
from src.px_perp.infrastructure.perplex_api import PerpMarketDataApi

logger = logging.getLogger(__name__)

_ERROR_ACTIONS = frozenset({Action.CANCEL_ORDER_ERROR.value, "Error"})
_TERMINAL_STATUS_VALUES = frozenset(s.value for s in TERMINAL_ORDER_STATUSES)


class PerpService:
    def __init__(
        self,
        cache: PerplexCache,
        messenger: MessengerProtocol,
        indexer: IndexerProtocol,
        market_data: PerpMarketDataApi,
        poll_args: PollArgs,
        account_summary_ttl_ms: int,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._cache = cache
        self._messenger = messenger
        self._indexer = indexer
        self._market_data = market_data
        self._poll_args = poll_args
        self._account_summary_ttl_ms = account_summary_ttl_ms
        self._sleep = sleep
        self._summaries: dict[tuple[str, str], AccountSummary] = {}

    # --- Orders ---

    async def place_order(self, params: PlacePerpOrderParams, signer: Signer) -> PerpOrder:
        market = self._cache.get_perp_market_by_id(params.market_id)
        validate_order_ticks(market, params.type, params.size, params.price)

        transfer_id = await self._messenger.submit(
            market.account_id,
            make_tags({
                "Action": Action.TRANSFER.value,
                "Recipient": market.id,
                "Quantity": 0,
                "X-Order-Type": params.type.value,
                "X-Order-Side": params.side.value,
                "X-Order-Size": params.size,
                "X-Order-Price": params.price,
                "X-Reduce-Only": True if params.reduce_only else None,
            }),
            signer,
        )
        logger.info(
            "%s %s order submitted on %s: size=%d price=%s, transfer %s",
            params.type.value, params.side.value, market.base_ticker,
            params.size, params.price, transfer_id,
        )

        def is_order_outcome(msg: AoMessage) -> bool:
            if msg.tags.get("X-Order-Id") != transfer_id:
                return False
            if "X-Error" in msg.tags:
                return True
            if msg.tags.get("X-Order-Status") in _TERMINAL_STATUS_VALUES:
                return True
            # Resting limit orders are confirmed once booked
            return (
                params.type != OrderType.MARKET
                and msg.tags.get("Action") == Action.ORDER_BOOKED.value
            )

        outcome = await look_for_message_paginated(
            self._indexer,
            [
                TagFilter.of("X-Order-Id", transfer_id),
                TagFilter.of("From-Process", market.id),
            ],
            is_order_outcome,
            self._poll_args,
            sleep=self._sleep,
        )
        if outcome is None:
            logger.warning(
                "Order %s not confirmed after %d polls", transfer_id, self._poll_args.max_retries
            )
            raise ConfirmationTimeoutError("Order placement", transfer_id)

        self._invalidate_summary(market.account_id, signer.address)
        order = _order_from_message(outcome, market, transfer_id, params)
        if "X-Error" in outcome.tags or order.status == OrderStatus.FAILED:
            detail = outcome.tags.get("X-Error") or "Order has failed"
            logger.warning("Order %s failed: %s", transfer_id, detail)
            raise RemoteFailureError(detail, transfer_id)

        logger.info("Order %s confirmed with status %s", order.id, order.status.value)
        return order

    async def cancel_order(self, params: CancelOrderParams, signer: Signer) -> PerpOrder:
        market = self._cache.get_perp_market_by_id(params.market_id)

        cancel_id = await self._messenger.submit(
            market.id,
            make_tags({"Action": Action.CANCEL_ORDER.value, "Order-Id": params.order_id}),
            signer,
        )
        logger.info(
            "Cancel of order %s submitted on %s: %s", params.order_id, market.base_ticker, cancel_id
        )

        def is_cancel_outcome(msg: AoMessage) -> bool:
            if msg.tags.get("Pushed-For") != cancel_id:
                return False
            if msg.tags.get("Action") in _ERROR_ACTIONS or "X-Error" in msg.tags:
                return True
            return (
                msg.tags.get("X-Order-Id") == params.order_id
                and msg.tags.get("X-Order-Status") == OrderStatus.CANCELED.value
            )

        outcome = await look_for_message_paginated(
            self._indexer,
            [
                TagFilter.of("Pushed-For", cancel_id),
                TagFilter.of("From-Process", market.id),
            ],
            is_cancel_outcome,
            self._poll_args,
            sleep=self._sleep,
        )
        if outcome is None:
            logger.warning(
                "Cancel %s not confirmed after %d polls", cancel_id, self._poll_args.max_retries
            )
            raise ConfirmationTimeoutError("Order cancellation", cancel_id)

        if outcome.tags.get("Action") in _ERROR_ACTIONS or "X-Error" in outcome.tags:
            detail = (
                outcome.tags.get("X-Error")
                or outcome.tags.get("Error")
                or outcome.data
                or "Order could not be canceled"
            )
            logger.warning("Cancel %s failed: %s", cancel_id, detail)
            raise RemoteFailureError(detail, cancel_id)

        self._invalidate_summary(market.account_id, signer.address)
        order = _order_from_message(outcome, market, cancel_id)
        logger.info("Order %s canceled", order.id)
        return order

    # --- Collateral ---

    async def deposit_collateral(
        self, params: DepositCollateralParams, signer: Signer
    ) -> CollateralDeposit:
        started_at = unix_seconds(utc_now())
        transfer_id = await self._messenger.submit(
            params.token_id,
            make_tags({
                "Action": Action.TRANSFER.value,
                "Recipient": params.account_id,
                "Quantity": params.quantity,
                "X-Operation-Type": OperationType.DEPOSIT_COLLATERAL.value,
            }),
            signer,
        )
        logger.info(
            "Collateral deposit submitted to %s: %d, transfer %s",
            params.account_id, params.quantity, transfer_id,
        )

        def is_deposit_outcome(msg: AoMessage) -> bool:
            if msg.tags.get("Pushed-For") != transfer_id:
                return False
            action = msg.tags.get("Action")
            if action == Action.COLLATERAL_DEPOSITED.value:
                return True
            # Refund of a rejected deposit
            return action == Action.TRANSFER.value and "X-Error" in msg.tags

        outcome = await look_for_message(
            self._indexer,
            [
                TagFilter.of("Pushed-For", transfer_id),
                TagFilter.of("From-Process", params.account_id),
            ],
            is_deposit_outcome,
            self._poll_args,
            min_ingested_at=started_at,
            sleep=self._sleep,
        )
        if outcome is None:
            logger.warning(
                "Deposit %s not confirmed after %d polls", transfer_id, self._poll_args.max_retries
            )
            raise ConfirmationTimeoutError("Collateral deposit", transfer_id)

        if outcome.tags.get("Action") != Action.COLLATERAL_DEPOSITED.value:
            detail = outcome.tags["X-Error"]
            logger.warning("Deposit %s refunded: %s", transfer_id, detail)
            raise RemoteFailureError(detail, transfer_id)

        self._invalidate_summary(params.account_id, signer.address)
        logger.info("Deposit %s credited to %s", transfer_id, params.account_id)
        return CollateralDeposit(
            id=transfer_id,
            account_id=params.account_id,
            token_id=params.token_id,
            quantity=params.quantity,
        )

    # --- Reads ---

    async def get_account_summary(self, account_id: str, wallet: str) -> AccountSummary:
        key = (account_id, wallet)
        cached = self._summaries.get(key)
        ttl_ms = self._account_summary_ttl_ms
        if cached is not None and self._cache.is_fresh(cached.fetched_at, ttl_ms):
            return cached

        result = await self._messenger.dryrun(
            account_id,
            make_tags({"Action": Action.ACCOUNT_SUMMARY.value, "Target": wallet}),
        )
        data = result.messages[0].data if result.messages else ""
        if not data:
            raise UpstreamUnavailableError(f"No account summary returned by {account_id}")

        try:
            response = AccountSummaryResponse.model_validate_json(data)
        except ValidationError as exc:
            raise UpstreamUnavailableError(
                f"Malformed account summary from {account_id}: {exc}"
            ) from exc

        summary = AccountSummary(
            account_id=account_id,
            wallet=wallet,
            collaterals=dict(response.collaterals),
            positions={
                market_id: p.to_domain(market_id) for market_id, p in response.positions.items()
            },
            orders={
                market_id: {order_id: o.to_domain(market_id) for order_id, o in orders.items()}
                for market_id, orders in response.orders.items()
            },
            margin_details=response.margin_details.to_domain(),
            fetched_at=self._cache.now(),
        )
        self._summaries[key] = summary
        return summary

    async def get_order_book(self, market_id: str) -> OrderBook:
        market = self._cache.get_perp_market_by_id(market_id)
        return await self._market_data.fetch_order_book(market.id)

    async def get_latest_funding_rate(self, market_id: str) -> FundingRate:
        market = self._cache.get_perp_market_by_id(market_id)
        return await self._market_data.fetch_latest_funding_rate(market.id)

    async def get_positions(self, wallet: str) -> list[PerpPosition]:
        return await self._market_data.fetch_positions(wallet)

    def _invalidate_summary(self, account_id: str, wallet: str) -> None:
        self._summaries.pop((account_id, wallet), None)


def _order_from_message(
    msg: AoMessage,
    market: PerpMarket,
    reference: str,
    params: PlacePerpOrderParams | None = None,
) -> PerpOrder:
    """Build an order from the X-Order-* tags, falling back to the submitted params.

    Parse errors carry the submitted message id as reference.
    """
    try:
        return _parse_order(msg, market, params)
    except (ValueError, AttributeError) as exc:
        raise UpstreamUnavailableError(
            f"Malformed order tags on {msg.id}: {exc}", reference
        ) from exc
    except UpstreamUnavailableError as exc:
        raise UpstreamUnavailableError(exc.detail, reference) from exc


def _parse_order(
    msg: AoMessage, market: PerpMarket, params: PlacePerpOrderParams | None
) -> PerpOrder:
    order_type = OrderType(msg.tags.get("X-Order-Type") or params.type.value)
    side = OrderSide(msg.tags.get("X-Order-Side") or params.side.value)
    status = OrderStatus(msg.tags.get("X-Order-Status", OrderStatus.NEW.value))

    default_size = params.size if params is not None else None
    price = msg.tags.get("X-Order-Price")
    return PerpOrder(
        id=msg.tags.get("X-Order-Id", msg.id),
        market_id=market.id,
        type=order_type,
        side=side,
        status=status,
        original_quantity=msg.int_tag("X-Original-Quantity", default=default_size),
        executed_quantity=msg.int_tag("X-Executed-Quantity", default=0),
        executed_value=msg.int_tag("X-Executed-Value", default=0),
        initial_price=msg.int_tag("X-Order-Price") if price else (params.price if params else None),
    )
