"""
Auction Module.

This module provides the auction records and bidding rules:
- Surplus, Debt and Collateral auction records
- Bid validation and increment rules
- Error taxonomy shared by the engine
"""

from auctioneer.core.auction.records import (
    AuctionType,
    AuctionPhase,
    Auction,
    BaseAuction,
    SurplusAuction,
    DebtAuction,
    CollateralAuction,
    new_surplus_auction,
    new_debt_auction,
    new_collateral_auction,
    sum_coins,
)

from auctioneer.core.auction.bidding import (
    validate_bid,
    is_valid_bid,
    bid_terms,
    min_forward_bid,
    max_reverse_lot,
)

from auctioneer.core.auction.errors import (
    AuctionError,
    AuctionNotFound,
    AuctionExpired,
    AuctionNotExpired,
    BidTooSmall,
    BidExceedsCeiling,
    InvalidBidder,
    InvalidBidDenom,
    InvalidLotDenom,
    InvalidBidTerms,
    InsufficientFunds,
    FatalAuctionError,
    CloseAuctionFailed,
    GenesisError,
)

__all__ = [
    # Records
    "AuctionType",
    "AuctionPhase",
    "Auction",
    "BaseAuction",
    "SurplusAuction",
    "DebtAuction",
    "CollateralAuction",
    "new_surplus_auction",
    "new_debt_auction",
    "new_collateral_auction",
    "sum_coins",
    # Bidding
    "validate_bid",
    "is_valid_bid",
    "bid_terms",
    "min_forward_bid",
    "max_reverse_lot",
    # Errors
    "AuctionError",
    "AuctionNotFound",
    "AuctionExpired",
    "AuctionNotExpired",
    "BidTooSmall",
    "BidExceedsCeiling",
    "InvalidBidder",
    "InvalidBidDenom",
    "InvalidLotDenom",
    "InvalidBidTerms",
    "InsufficientFunds",
    "FatalAuctionError",
    "CloseAuctionFailed",
    "GenesisError",
]
