"""
Tests for the Auction Registry.

Tests cover:
1. ID allocation
2. Store, lookup and delete
3. Ordered iteration and the expiry sweep
4. Checkpoint and rollback
"""

from datetime import datetime, timedelta, timezone

import pytest

from auctioneer.core.auction import new_surplus_auction
from auctioneer.core.registry import AuctionRegistry
from auctioneer.core.types import Amount


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_auction(registry, end_offset_hours=48):
    auction = new_surplus_auction(
        "liquidator", Amount.of("usdx", 100), "token", NOW + timedelta(hours=end_offset_hours),
    )
    auction.id = registry.next_id()
    registry.put(auction)
    return auction


@pytest.fixture
def registry():
    return AuctionRegistry()


class TestIdAllocation:
    """Tests for the monotonic ID counter."""

    def test_ids_start_at_one(self, registry):
        assert registry.peek_next_id() == 1
        assert registry.next_id() == 1
        assert registry.next_id() == 2

    def test_ids_never_reused(self, registry):
        """Deleting an auction does not free its ID."""
        auction = make_auction(registry)
        registry.delete(auction.id)

        assert registry.next_id() == auction.id + 1

    def test_zero_next_id_rejected(self):
        with pytest.raises(ValueError):
            AuctionRegistry(next_auction_id=0)

    def test_set_next_id_must_exceed_stored(self, registry):
        make_auction(registry)
        make_auction(registry)

        with pytest.raises(ValueError):
            registry.set_next_id(2)

        registry.set_next_id(10)
        assert registry.peek_next_id() == 10


class TestStore:
    """Tests for put/get/delete."""

    def test_put_and_get(self, registry):
        auction = make_auction(registry)

        assert registry.get(auction.id) is auction
        assert auction.id in registry
        assert len(registry) == 1

    def test_get_missing(self, registry):
        assert registry.get(42) is None

    def test_put_unallocated_id_rejected(self, registry):
        auction = new_surplus_auction("liquidator", Amount.of("usdx", 1), "token", NOW)
        auction.id = 5

        with pytest.raises(ValueError):
            registry.put(auction)

    def test_put_zero_id_rejected(self, registry):
        auction = new_surplus_auction("liquidator", Amount.of("usdx", 1), "token", NOW)

        with pytest.raises(ValueError):
            registry.put(auction)

    def test_delete(self, registry):
        auction = make_auction(registry)

        assert registry.delete(auction.id)
        assert not registry.delete(auction.id)
        assert registry.get(auction.id) is None


class TestIteration:
    """Tests for ordered iteration."""

    def test_iterate_all_in_id_order(self, registry):
        for _ in range(3):
            make_auction(registry)

        assert [auction_id for auction_id, _ in registry.iterate_all()] == [1, 2, 3]

    def test_delete_during_iteration(self, registry):
        """Removing records mid-sweep neither skips nor repeats any."""
        for _ in range(4):
            make_auction(registry)

        seen = []
        for auction_id, _ in registry.iterate_all():
            seen.append(auction_id)
            registry.delete(auction_id)
            registry.delete(auction_id + 1)

        assert seen == [1, 3]
        assert len(registry) == 0

    def test_iterate_expired_order(self, registry):
        """Due auctions come out by end time, then by ID."""
        make_auction(registry, end_offset_hours=3)
        make_auction(registry, end_offset_hours=1)
        make_auction(registry, end_offset_hours=3)
        make_auction(registry, end_offset_hours=10)

        due = [auction_id for auction_id, _ in registry.iterate_expired(NOW + timedelta(hours=3))]

        assert due == [2, 1, 3]

    def test_iterate_expired_includes_end_time(self, registry):
        auction = make_auction(registry, end_offset_hours=1)

        assert list(registry.iterate_expired(auction.end_time)) == [(auction.id, auction)]
        assert list(registry.iterate_expired(auction.end_time - timedelta(seconds=1))) == []


class TestCheckpoint:
    """Tests for rollback support."""

    def test_rollback_undoes_changes(self, registry):
        auction = make_auction(registry)
        checkpoint = registry.checkpoint(auction.id)

        auction.has_received_bids = True
        auction.bid = Amount.of("token", 5)
        make_auction(registry)
        registry.rollback(checkpoint)

        assert len(registry) == 1
        assert not registry.get(auction.id).has_received_bids
        assert registry.get(auction.id).bid.is_zero()
        assert registry.peek_next_id() == 2

    def test_rollback_keeps_held_reference(self, registry):
        """The reset record is the same object callers already hold."""
        auction = make_auction(registry)
        checkpoint = registry.checkpoint(auction.id)

        auction.bidder = bytes([7]) * 20
        registry.rollback(checkpoint)

        assert registry.get(auction.id) is auction
        assert auction.bidder is None

    def test_rollback_restores_deleted_record(self, registry):
        auction = make_auction(registry)
        checkpoint = registry.checkpoint(auction.id)

        registry.delete(auction.id)
        registry.rollback(checkpoint)

        assert registry.get(auction.id) is auction

    def test_rollback_leaves_other_records_alone(self, registry):
        other = make_auction(registry)
        auction = make_auction(registry)
        checkpoint = registry.checkpoint(auction.id)

        other.has_received_bids = True
        registry.rollback(checkpoint)

        assert registry.get(other.id) is other
        assert other.has_received_bids

    def test_stats(self, registry):
        make_auction(registry)

        stats = registry.stats()

        assert stats["active_auctions"] == 1
        assert stats["next_auction_id"] == 2
        assert stats["by_type"] == {"surplus": 1}
