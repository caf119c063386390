"""
Auction Registry Module.

Keyed store of in-flight auctions with a monotonic ID allocator.
"""

from auctioneer.core.registry.auction_registry import (
    AuctionRegistry,
    DEFAULT_NEXT_AUCTION_ID,
    RegistryCheckpoint,
)

__all__ = [
    "AuctionRegistry",
    "DEFAULT_NEXT_AUCTION_ID",
    "RegistryCheckpoint",
]
