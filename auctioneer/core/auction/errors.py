"""
Auction errors.

Recoverable errors derive from AuctionError: the rejected call has made no
state change and the caller can report the failure by its ``code``.
FatalAuctionError marks conditions the surrounding block processing must
not continue past (a half-closed auction, a corrupt snapshot).
"""


class AuctionError(Exception):
    """Base class for recoverable auction errors."""
    code = "auction_error"


class AuctionNotFound(AuctionError):
    code = "auction_not_found"

    def __init__(self, auction_id: int):
        super().__init__(f"auction {auction_id} not found")
        self.auction_id = auction_id


class AuctionExpired(AuctionError):
    code = "auction_expired"


class AuctionNotExpired(AuctionError):
    code = "auction_not_expired"


class BidTooSmall(AuctionError):
    code = "bid_too_small"


class BidExceedsCeiling(AuctionError):
    code = "bid_exceeds_ceiling"


class InvalidBidder(AuctionError):
    code = "invalid_bidder"


class InvalidBidDenom(AuctionError):
    code = "invalid_bid_denom"


class InvalidLotDenom(AuctionError):
    code = "invalid_lot_denom"


class InvalidBidTerms(AuctionError):
    """The side of the auction that is fixed in the current phase was changed."""
    code = "invalid_bid_terms"


class InsufficientFunds(AuctionError):
    """Raised by custody when an account cannot cover a send or burn."""
    code = "insufficient_funds"


class FatalAuctionError(Exception):
    """Base class for errors that must halt processing of the current step."""


class CloseAuctionFailed(FatalAuctionError):
    def __init__(self, auction_id: int, reason: str):
        super().__init__(f"failed to close auction {auction_id}: {reason}")
        self.auction_id = auction_id


class GenesisError(FatalAuctionError):
    """Snapshot failed validation on load."""


__all__ = [
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
