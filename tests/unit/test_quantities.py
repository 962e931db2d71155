"""Tests for px_common.quantities and the Token / TokenQuantity value objects."""

import pytest

from src.px_common.errors import InvalidFormatError
from src.px_common.quantities import decimal_to_int, int_to_decimal, round_to_tick, to_bps
from src.px_directory.domain.models import Token, TokenQuantity
from tests.fakes import BASE_TOKEN_ID, QUOTE_TOKEN_ID


class TestDecimalToInt:
    def test_integer_string(self) -> None:
        assert decimal_to_int("42", 6) == 42_000_000

    def test_fraction_is_padded(self) -> None:
        assert decimal_to_int("1.5", 6) == 1_500_000

    def test_truncates_not_rounds(self) -> None:
        # denomination 2: "1.239" → 123, never 124
        assert decimal_to_int("1.239", 2) == 123

    def test_truncation_on_long_denomination(self) -> None:
        assert decimal_to_int("1.23456", 15) == 1_234_560_000_000_000

    def test_zero_denomination_drops_fraction(self) -> None:
        assert decimal_to_int("7.99", 0) == 7

    def test_arbitrary_precision(self) -> None:
        assert decimal_to_int("123456789012345678901234567890.5", 18) == (
            123456789012345678901234567890 * 10**18 + 5 * 10**17
        )

    @pytest.mark.parametrize("value", ["", "abc", "-1", "1.", ".5", "1,5", "1e5", " 1"])
    def test_invalid_format(self, value: str) -> None:
        with pytest.raises(InvalidFormatError) as exc_info:
            decimal_to_int(value, 6)
        assert exc_info.value.code == 1001


class TestIntToDecimal:
    def test_strips_trailing_zeros(self) -> None:
        assert int_to_decimal(1_234_500, 6) == "1.2345"

    def test_whole_number_omits_point(self) -> None:
        assert int_to_decimal(5_000_000, 6) == "5"

    def test_short_value_is_left_padded(self) -> None:
        assert int_to_decimal(5, 3) == "0.005"

    def test_value_as_long_as_denomination(self) -> None:
        assert int_to_decimal(123, 3) == "0.123"

    def test_zero_denomination(self) -> None:
        assert int_to_decimal(42, 0) == "42"

    def test_reference_swap_output(self) -> None:
        assert int_to_decimal(6_714_690_665, 9) == "6.714690665"


class TestRoundTrip:
    @pytest.mark.parametrize("denomination", [0, 1, 6, 9, 12, 18])
    @pytest.mark.parametrize(
        "quantity", [0, 1, 9, 10, 999_999, 1_000_000, 123_456_789, 10**30 + 7]
    )
    def test_from_readable_inverts_to_readable(self, denomination: int, quantity: int) -> None:
        assert decimal_to_int(int_to_decimal(quantity, denomination), denomination) == quantity


class TestRoundToTick:
    def test_rounds_down_below_half(self) -> None:
        # (7 + 2) // 5 * 5
        assert round_to_tick(7, 5) == 5

    def test_rounds_up_above_half(self) -> None:
        assert round_to_tick(8, 5) == 10

    def test_exact_half_goes_up(self) -> None:
        assert round_to_tick(2, 4) == 4

    def test_odd_tick_half_point(self) -> None:
        # tick 5: half is 2 (integer), so 2 → 0 and 3 → 5
        assert round_to_tick(2, 5) == 0
        assert round_to_tick(3, 5) == 5

    def test_already_on_tick(self) -> None:
        assert round_to_tick(100, 10) == 100


class TestToBps:
    def test_typical_fee(self) -> None:
        assert to_bps(0.003) == 30

    def test_bounds(self) -> None:
        assert to_bps(0) == 0
        assert to_bps(1) == 10_000

    def test_rounds_to_nearest(self) -> None:
        assert to_bps(0.00304) == 30
        assert to_bps(0.00306) == 31


class TestTokenQuantity:
    def _token(self, token_id: str = BASE_TOKEN_ID, denomination: int = 6) -> Token:
        return Token(id=token_id, name="T", ticker="T", denomination=denomination)

    def test_from_readable(self) -> None:
        qty = self._token().from_readable("1.25")
        assert qty.quantity == 1_250_000
        assert qty.to_readable() == "1.25"

    def test_add_same_token(self) -> None:
        token = self._token()
        total = TokenQuantity(token, 5) + TokenQuantity(token, 7)
        assert total == TokenQuantity(token, 12)

    def test_subtract_same_token(self) -> None:
        token = self._token()
        assert (TokenQuantity(token, 7) - TokenQuantity(token, 5)).quantity == 2

    def test_mismatched_tokens_rejected(self) -> None:
        a = TokenQuantity(self._token(BASE_TOKEN_ID), 5)
        b = TokenQuantity(self._token(QUOTE_TOKEN_ID), 5)
        with pytest.raises(ValueError, match="Cannot combine"):
            a + b
        with pytest.raises(ValueError, match="Cannot combine"):
            a - b

    def test_subtraction_below_zero_rejected(self) -> None:
        token = self._token()
        with pytest.raises(ValueError, match="non-negative"):
            TokenQuantity(token, 5) - TokenQuantity(token, 6)

    def test_negative_construction_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenQuantity(self._token(), -1)

    def test_immutable(self) -> None:
        qty = TokenQuantity(self._token(), 5)
        with pytest.raises(AttributeError):
            qty.quantity = 6  # type: ignore[misc]
