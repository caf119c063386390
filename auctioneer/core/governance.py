"""
Parameter change permissions.

A committee may be allowed to change only some auction parameters. The
allow-list is a struct of per-field booleans; a proposed parameter set is
accepted when every field that differs from the current set is allowed.
"""

from dataclasses import dataclass

from auctioneer.core.config import AuctionParams


@dataclass(frozen=True)
class AllowedAuctionParams:
    """Which AuctionParams fields may be changed."""
    max_auction_duration: bool = False
    bid_duration: bool = False
    increment_surplus: bool = False
    increment_debt: bool = False
    increment_collateral: bool = False

    def allows(self, current: AuctionParams, incoming: AuctionParams) -> bool:
        """Return True if every changed field is allowed to change."""
        if current.max_auction_duration != incoming.max_auction_duration and not self.max_auction_duration:
            return False
        if current.bid_duration != incoming.bid_duration and not self.bid_duration:
            return False
        if current.increment_surplus != incoming.increment_surplus and not self.increment_surplus:
            return False
        if current.increment_debt != incoming.increment_debt and not self.increment_debt:
            return False
        if current.increment_collateral != incoming.increment_collateral and not self.increment_collateral:
            return False
        return True


ALLOW_ALL = AllowedAuctionParams(
    max_auction_duration=True,
    bid_duration=True,
    increment_surplus=True,
    increment_debt=True,
    increment_collateral=True,
)


__all__ = ["AllowedAuctionParams", "ALLOW_ALL"]
