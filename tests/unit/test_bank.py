"""
Tests for the in-memory custody bank.
"""

import pytest

from auctioneer.core.auction import InsufficientFunds
from auctioneer.core.state import new_bank
from auctioneer.core.types import Amount
from auctioneer.crypto import module_address


ALICE = bytes([1]) * 20
BOB = bytes([2]) * 20


@pytest.fixture
def bank():
    return new_bank([(ALICE, Amount.of("usdx", 100))])


class TestTransfers:
    """Tests for send, mint and burn."""

    def test_genesis_allocations(self, bank):
        assert bank.balance(ALICE, "usdx") == Amount.of("usdx", 100)
        assert bank.total_supply("usdx") == Amount.of("usdx", 100)

    def test_send(self, bank):
        bank.send(ALICE, BOB, Amount.of("usdx", 30))

        assert bank.balance(ALICE, "usdx") == Amount.of("usdx", 70)
        assert bank.balance(BOB, "usdx") == Amount.of("usdx", 30)

    def test_send_insufficient(self, bank):
        with pytest.raises(InsufficientFunds):
            bank.send(BOB, ALICE, Amount.of("usdx", 1))

    def test_send_zero_is_noop(self, bank):
        bank.send(BOB, ALICE, Amount.zero("usdx"))
        assert bank.balances_of(BOB) == {}

    def test_send_invalid_address(self, bank):
        with pytest.raises(ValueError):
            bank.send(ALICE, b"short", Amount.of("usdx", 1))

    def test_mint_increases_supply(self, bank):
        bank.mint(BOB, Amount.of("gov", 5))

        assert bank.balance(BOB, "gov") == Amount.of("gov", 5)
        assert bank.total_supply("gov") == Amount.of("gov", 5)

    def test_burn_reduces_supply(self, bank):
        bank.burn(ALICE, Amount.of("usdx", 40))

        assert bank.total_supply("usdx") == Amount.of("usdx", 60)
        assert bank.stats()["burned"] == {"usdx": Amount.of("usdx", 40).units}

    def test_burn_insufficient(self, bank):
        with pytest.raises(InsufficientFunds):
            bank.burn(ALICE, Amount.of("usdx", 101))

    def test_module_balance(self, bank):
        bank.send(ALICE, module_address("auction"), Amount.of("usdx", 1))
        assert bank.module_balance("auction", "usdx") == Amount.of("usdx", 1)


class TestRollback:
    """Tests for rollback marks."""

    def test_rollback(self, bank):
        mark = bank.begin()

        bank.send(ALICE, BOB, Amount.of("usdx", 10))
        bank.mint(BOB, Amount.of("gov", 1))
        bank.rollback(mark)

        assert bank.balance(ALICE, "usdx") == Amount.of("usdx", 100)
        assert bank.balance(BOB, "gov").is_zero()
        assert bank.total_supply("gov").is_zero()
        assert "gov" not in bank.stats()["minted"]

    def test_commit_keeps_changes(self, bank):
        mark = bank.begin()
        bank.burn(ALICE, Amount.of("usdx", 10))
        bank.commit(mark)

        assert bank.total_supply("usdx") == Amount.of("usdx", 90)

    def test_nested_marks(self, bank):
        """Rolling back the outer mark undoes a committed inner mark too."""
        outer = bank.begin()
        bank.send(ALICE, BOB, Amount.of("usdx", 10))

        inner = bank.begin()
        bank.send(ALICE, BOB, Amount.of("usdx", 20))
        bank.commit(inner)

        bank.rollback(outer)

        assert bank.balance(ALICE, "usdx") == Amount.of("usdx", 100)
        assert bank.balances_of(BOB) == {}

    def test_inner_rollback_keeps_outer_changes(self, bank):
        outer = bank.begin()
        bank.send(ALICE, BOB, Amount.of("usdx", 10))

        inner = bank.begin()
        bank.send(ALICE, BOB, Amount.of("usdx", 20))
        bank.rollback(inner)
        bank.commit(outer)

        assert bank.balance(BOB, "usdx") == Amount.of("usdx", 10)

    def test_no_log_without_open_mark(self, bank):
        bank.send(ALICE, BOB, Amount.of("usdx", 10))
        assert bank._journal == []

    def test_state_skips_empty_balances(self, bank):
        before = bank.state()

        mark = bank.begin()
        bank.send(ALICE, BOB, Amount.of("usdx", 10))
        bank.rollback(mark)

        assert bank.state() == before
