"""Order tick validation against a perp market's tick sizes."""

from src.px_common.enums import OrderType
from src.px_common.errors import TickSizeError
from src.px_common.quantities import int_to_decimal, round_to_tick
from src.px_directory.domain.models import PerpMarket


def validate_order_ticks(
    market: PerpMarket, order_type: OrderType, size: int, price: int | None = None
) -> None:
    """Raise TickSizeError unless size (and, for limit orders, price) sit on a tick.

    Market orders carry no price, so only their size is checked. The error
    names the nearest valid value in human-readable form, never below one tick.
    """
    if order_type != OrderType.MARKET and price is not None:
        if price % market.min_price_tick_size != 0:
            nearest = max(
                round_to_tick(price, market.min_price_tick_size), market.min_price_tick_size
            )
            raise TickSizeError(
                "price",
                int_to_decimal(price, market.quote_denomination),
                int_to_decimal(nearest, market.quote_denomination),
            )

    if size % market.min_quantity_tick_size != 0:
        nearest = max(
            round_to_tick(size, market.min_quantity_tick_size), market.min_quantity_tick_size
        )
        raise TickSizeError(
            "size",
            int_to_decimal(size, market.base_denomination),
            int_to_decimal(nearest, market.base_denomination),
        )
