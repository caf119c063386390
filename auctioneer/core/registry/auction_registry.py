"""
Auction Registry - keyed store of in-flight auctions.

This module provides:
- Monotonic auction ID allocation (starts at 1, never reused)
- Lookup, insert and delete by ID
- Ordered iteration for the end-of-block expiry sweep
- Checkpoint/rollback so a failed engine call leaves no trace
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from auctioneer.core.auction.records import BaseAuction
from auctioneer.utils.logger import get_logger
from auctioneer.utils.validation import validate_auction_id

logger = get_logger("registry")


# =============================================================================
# Constants
# =============================================================================

DEFAULT_NEXT_AUCTION_ID = 1


@dataclass
class RegistryCheckpoint:
    """ID counter and one record's fields, captured before an engine call."""
    next_id: int
    auction: Optional[BaseAuction] = None
    fields: Optional[Dict[str, Any]] = None


# =============================================================================
# Auction Registry
# =============================================================================


class AuctionRegistry:
    """
    Registry of active auctions.

    Records are stored by reference and mutated in place by the engine.
    Iteration works on a copy of the key set, so deleting auctions while
    sweeping is safe and a sweep can be re-run after it stopped part way.
    """

    def __init__(self, next_auction_id: int = DEFAULT_NEXT_AUCTION_ID):
        valid, err = validate_auction_id(next_auction_id)
        if not valid:
            raise ValueError(f"invalid next auction id: {err}")

        # Auction ID -> auction
        self.auctions: Dict[int, BaseAuction] = {}

        self._next_id = next_auction_id

    # =========================================================================
    # ID Allocation
    # =========================================================================

    def next_id(self) -> int:
        """Allocate an auction ID and advance the counter."""
        auction_id = self._next_id
        self._next_id += 1
        return auction_id

    def peek_next_id(self) -> int:
        """The ID the next allocation will return."""
        return self._next_id

    def set_next_id(self, next_auction_id: int) -> None:
        """Set the counter (genesis only). It may never move backwards past a stored ID."""
        valid, err = validate_auction_id(next_auction_id)
        if not valid:
            raise ValueError(f"invalid next auction id: {err}")
        if self.auctions and max(self.auctions) >= next_auction_id:
            raise ValueError(
                f"next auction id {next_auction_id} must exceed stored id {max(self.auctions)}"
            )
        self._next_id = next_auction_id

    # =========================================================================
    # Lookup
    # =========================================================================

    def get(self, auction_id: int) -> Optional[BaseAuction]:
        """Get auction by ID."""
        return self.auctions.get(auction_id)

    def put(self, auction: BaseAuction) -> None:
        """Store an auction under its own ID."""
        valid, err = validate_auction_id(auction.id)
        if not valid:
            raise ValueError(err)
        if auction.id >= self._next_id:
            raise ValueError(f"auction id {auction.id} was never allocated (next id {self._next_id})")
        self.auctions[auction.id] = auction

    def delete(self, auction_id: int) -> bool:
        """Remove an auction. Returns False if it was not stored."""
        if self.auctions.pop(auction_id, None) is None:
            return False
        logger.debug(f"Auction {auction_id} removed from registry")
        return True

    def __contains__(self, auction_id: int) -> bool:
        return auction_id in self.auctions

    def __len__(self) -> int:
        return len(self.auctions)

    # =========================================================================
    # Iteration
    # =========================================================================

    def iterate_all(self) -> Iterator[Tuple[int, BaseAuction]]:
        """Yield (id, auction) in ascending ID order."""
        for auction_id in sorted(self.auctions):
            auction = self.auctions.get(auction_id)
            if auction is not None:
                yield auction_id, auction

    def iterate_expired(self, cutoff: datetime) -> Iterator[Tuple[int, BaseAuction]]:
        """
        Yield auctions with ``end_time <= cutoff``, ordered by end time and
        then by ID.
        """
        due: List[Tuple[datetime, int]] = sorted(
            (auction.end_time, auction_id)
            for auction_id, auction in self.auctions.items()
            if auction.end_time <= cutoff
        )
        for _, auction_id in due:
            auction = self.auctions.get(auction_id)
            if auction is not None:
                yield auction_id, auction

    def all_auctions(self) -> List[BaseAuction]:
        return [auction for _, auction in self.iterate_all()]

    # =========================================================================
    # Rollback
    # =========================================================================

    def checkpoint(self, auction_id: Optional[int] = None) -> RegistryCheckpoint:
        """
        Capture what one engine call can change: the ID counter and, when
        given, the record stored under ``auction_id``.
        """
        auction = self.auctions.get(auction_id) if auction_id is not None else None
        fields = dict(vars(auction)) if auction is not None else None
        return RegistryCheckpoint(self._next_id, auction, fields)

    def rollback(self, checkpoint: RegistryCheckpoint) -> None:
        """
        Undo changes made since the checkpoint.

        Records stored under IDs allocated since are dropped. The captured
        record is reset in place and stored again, so references callers
        already hold stay current.
        """
        for auction_id in range(checkpoint.next_id, self._next_id):
            self.auctions.pop(auction_id, None)
        self._next_id = checkpoint.next_id

        if checkpoint.auction is not None:
            vars(checkpoint.auction).update(checkpoint.fields)
            self.auctions[checkpoint.auction.id] = checkpoint.auction

    # =========================================================================
    # Statistics
    # =========================================================================

    def stats(self) -> dict:
        """Get registry statistics."""
        by_type: Dict[str, int] = {}
        for auction in self.auctions.values():
            by_type[auction.kind.value] = by_type.get(auction.kind.value, 0) + 1

        return {
            "active_auctions": len(self.auctions),
            "next_auction_id": self._next_id,
            "by_type": by_type,
        }


__all__ = ["AuctionRegistry", "RegistryCheckpoint", "DEFAULT_NEXT_AUCTION_ID"]
