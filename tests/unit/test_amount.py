"""
Tests for Amount and WeightedAddresses.

Tests cover:
1. Construction and parsing
2. Integer arithmetic and denomination checks
3. Display formatting
4. Weighted splitting with remainder to the first address
"""

from decimal import Decimal

import pytest

from auctioneer.core.types import (
    Amount,
    UNIT_SCALE,
    WeightedAddresses,
    new_weighted_addresses,
    to_units,
)


A = bytes([1]) * 20
B = bytes([2]) * 20
C = bytes([3]) * 20


class TestAmountConstruction:
    """Tests for building amounts."""

    def test_of_scales_to_units(self):
        """Human values are stored as integer base units."""
        assert Amount.of("usdx", "10.5").units == 10_500_000
        assert Amount.of("usdx", 3).units == 3 * UNIT_SCALE

    def test_of_accepts_decimal(self):
        assert Amount.of("usdx", Decimal("0.000001")).units == 1

    def test_too_many_decimals_rejected(self):
        """Values finer than one base unit are rejected, not rounded."""
        with pytest.raises(ValueError):
            to_units("0.0000001")

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            Amount.of("usdx", "-1")
        with pytest.raises(ValueError):
            Amount("usdx", -1)

    def test_bad_denom_rejected(self):
        """Denoms must be lowercase and at least three characters."""
        with pytest.raises(ValueError):
            Amount.zero("X")
        with pytest.raises(ValueError):
            Amount.zero("ab")

    def test_parse(self):
        """Compact form is value followed by denom."""
        amount = Amount.parse("10.5token")
        assert amount == Amount.of("token", "10.5")
        assert Amount.parse("960mint-token").denom == "mint-token"

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            Amount.parse("token10")


class TestAmountArithmetic:
    """Tests for arithmetic and comparisons."""

    def test_add_and_subtract(self):
        a = Amount.of("usdx", 10)
        b = Amount.of("usdx", "2.5")

        assert a + b == Amount.of("usdx", "12.5")
        assert a - b == Amount.of("usdx", "7.5")

    def test_subtract_below_zero_rejected(self):
        with pytest.raises(ValueError):
            Amount.of("usdx", 1) - Amount.of("usdx", 2)

    def test_denom_mismatch_rejected(self):
        """Mixing denominations is an error, never a silent coercion."""
        with pytest.raises(ValueError):
            Amount.of("usdx", 1) + Amount.of("token", 1)
        with pytest.raises(ValueError):
            Amount.of("usdx", 1) < Amount.of("token", 2)

    def test_comparisons(self):
        small, large = Amount.of("usdx", 1), Amount.of("usdx", 2)
        assert small < large
        assert large >= small
        assert small <= small
        assert not small > large

    def test_zero(self):
        assert Amount.zero("usdx").is_zero()
        assert not Amount.of("usdx", "0.000001").is_zero()


class TestAmountDisplay:
    """Tests for string forms."""

    def test_str_strips_trailing_zeros(self):
        assert str(Amount.of("token", "10.50")) == "10.5token"

    def test_str_whole_number(self):
        """Whole numbers print without exponent."""
        assert str(Amount.of("usdx", 100)) == "100usdx"

    def test_to_decimal(self):
        assert Amount.of("usdx", "0.25").to_decimal() == Decimal("0.25")


class TestWeightedAddresses:
    """Tests for weighted payout lists."""

    def test_even_split(self):
        wa = new_weighted_addresses([A, B], [1, 1])

        shares = wa.split(Amount.of("coll", 20))

        assert shares == [(A, Amount.of("coll", 10)), (B, Amount.of("coll", 10))]

    def test_remainder_goes_to_first_address(self):
        """Integer division leftovers are paid to the first entry."""
        wa = new_weighted_addresses([A, B, C], [1, 1, 1])

        shares = wa.split(Amount("coll", 10))

        assert [s.units for _, s in shares] == [4, 3, 3]

    def test_shares_sum_exactly(self):
        wa = new_weighted_addresses([A, B, C], [7, 11, 13])
        amount = Amount("coll", 1_000_003)

        shares = wa.split(amount)

        assert sum(s.units for _, s in shares) == amount.units

    def test_zero_weight_gets_nothing(self):
        wa = new_weighted_addresses([A, B], [0, 5])

        shares = wa.split(Amount("coll", 9))

        assert shares == [(A, Amount("coll", 0)), (B, Amount("coll", 9))]

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            new_weighted_addresses([], [])

    def test_length_mismatch_rejected(self):
        valid, err = WeightedAddresses(addresses=[A, B], weights=[1]).validate()
        assert not valid
        assert "doesn't match" in err

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            new_weighted_addresses([A], [-1])

    def test_all_zero_weights_rejected(self):
        with pytest.raises(ValueError):
            new_weighted_addresses([A, B], [0, 0])

    def test_invalid_address_rejected(self):
        with pytest.raises(ValueError):
            new_weighted_addresses([b"\x01" * 19], [1])
