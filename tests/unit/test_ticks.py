"""Tests for order tick validation."""

import pytest

from src.px_common.enums import OrderType
from src.px_common.errors import TickSizeError
from src.px_directory.domain.models import PerpMarket
from src.px_perp.domain.ticks import validate_order_ticks

# perp_market fixture: price tick 1.0 (quote denomination 6),
# size tick 0.001 BTC (base denomination 8)


class TestValidOrders:
    def test_limit_on_ticks(self, perp_market: PerpMarket) -> None:
        validate_order_ticks(perp_market, OrderType.LIMIT, 200_000, 60_000_000_000)

    def test_market_order_ignores_price(self, perp_market: PerpMarket) -> None:
        validate_order_ticks(perp_market, OrderType.MARKET, 100_000, 60_000_400_000)

    def test_market_order_without_price(self, perp_market: PerpMarket) -> None:
        validate_order_ticks(perp_market, OrderType.MARKET, 300_000)


class TestPriceTicks:
    def test_off_tick_price_names_nearest(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError) as exc_info:
            validate_order_ticks(perp_market, OrderType.LIMIT, 200_000, 60_000_400_000)
        assert exc_info.value.nearest_valid == "60000"
        assert "Invalid price tick size: 60000.4" in exc_info.value.message

    def test_rounds_up_past_half(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError) as exc_info:
            validate_order_ticks(perp_market, OrderType.LIMIT_MAKER, 200_000, 60_000_600_000)
        assert exc_info.value.nearest_valid == "60001"

    def test_nearest_never_below_one_tick(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError) as exc_info:
            validate_order_ticks(perp_market, OrderType.LIMIT, 200_000, 400_000)
        assert exc_info.value.nearest_valid == "1"

    def test_price_checked_before_size(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError, match="price"):
            validate_order_ticks(perp_market, OrderType.LIMIT, 150_000, 60_000_400_000)


class TestSizeTicks:
    def test_off_tick_size_names_nearest(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError) as exc_info:
            validate_order_ticks(perp_market, OrderType.MARKET, 150_000)
        assert "Invalid size tick size" in exc_info.value.message
        assert exc_info.value.nearest_valid == "0.00200000"

    def test_tiny_size_suggests_one_tick(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError) as exc_info:
            validate_order_ticks(perp_market, OrderType.LIMIT, 1, 60_000_000_000)
        assert exc_info.value.nearest_valid == "0.00100000"

    def test_whole_unit_nearest(self, perp_market: PerpMarket) -> None:
        with pytest.raises(TickSizeError) as exc_info:
            validate_order_ticks(perp_market, OrderType.MARKET, 100_000_001)
        assert exc_info.value.nearest_valid == "1"
