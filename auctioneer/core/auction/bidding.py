"""
Bid Validator & Increment Rules.

Pure functions deciding whether a proposed (bid, lot) pair may replace an
auction's current terms. Nothing here touches the registry or custody.

Increment Rules:
---------------
Forward phase (bid rises, lot fixed):
    new_bid >= max(bid * (1 + increment), bid + 1 unit)
Reverse phase (lot falls, bid fixed):
    new_lot <= min(lot * (1 - increment), lot - 1 unit)

Every bid after the first must move the terms by at least one base unit,
so a zero bid or a zero increment cannot be matched to take the lead. The
first bid on an auction only has to match the starting terms
(``new_bid >= bid`` / ``new_lot <= lot``). Comparisons are exact: the
threshold is computed in Decimal with enough precision that no rounding
takes place, so every node accepts or rejects the same bids.

In a collateral auction's forward phase the required minimum is capped at
``max_bid``: a bid of exactly ``max_bid`` is always admissible and flips
the auction into reverse phase.
"""

from datetime import datetime
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal, localcontext
from typing import Optional, Tuple

from auctioneer.core.auction.errors import (
    AuctionExpired,
    BidExceedsCeiling,
    BidTooSmall,
    InvalidBidder,
    InvalidBidDenom,
    InvalidBidTerms,
    InvalidLotDenom,
)
from auctioneer.core.auction.records import (
    AuctionPhase,
    AuctionType,
    BaseAuction,
    CollateralAuction,
)
from auctioneer.core.config import AuctionParams
from auctioneer.core.types import Amount
from auctioneer.core.types.amount import DECIMAL_PRECISION
from auctioneer.utils.validation import validate_address


# =============================================================================
# Increment Thresholds
# =============================================================================


def meets_forward_increment(current: Amount, proposed: Amount, increment: Decimal) -> bool:
    """proposed > current and proposed >= current * (1 + increment), exactly."""
    if proposed.units <= current.units:
        return False
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(proposed.units) >= Decimal(current.units) * (1 + increment)


def meets_reverse_increment(current: Amount, proposed: Amount, increment: Decimal) -> bool:
    """proposed < current and proposed <= current * (1 - increment), exactly."""
    if proposed.units >= current.units:
        return False
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(proposed.units) <= Decimal(current.units) * (1 - increment)


def min_forward_bid(current: Amount, increment: Decimal) -> Amount:
    """Smallest bid (in whole units) that clears the forward increment."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        threshold = Decimal(current.units) * (1 + increment)
        units = max(int(threshold.to_integral_value(rounding=ROUND_CEILING)), current.units + 1)
    return current.with_units(units)


def max_reverse_lot(current: Amount, increment: Decimal) -> Amount:
    """Largest lot (in whole units) that clears the reverse increment."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        threshold = Decimal(current.units) * (1 - increment)
        units = max(0, min(int(threshold.to_integral_value(rounding=ROUND_FLOOR)), current.units - 1))
    return current.with_units(units)


def increment_for(auction: BaseAuction, params: AuctionParams) -> Decimal:
    if auction.kind == AuctionType.SURPLUS:
        return params.increment_surplus
    if auction.kind == AuctionType.DEBT:
        return params.increment_debt
    if auction.kind == AuctionType.COLLATERAL:
        return params.increment_collateral
    raise TypeError(f"unrecognized auction type: {auction.kind}")


# =============================================================================
# Validation
# =============================================================================


def _check_forward(auction: BaseAuction, bid: Amount, increment: Decimal) -> None:
    if not auction.has_received_bids:
        if bid < auction.bid:
            raise BidTooSmall(f"bid {bid} is below the starting bid {auction.bid}")
        return

    if not meets_forward_increment(auction.bid, bid, increment):
        raise BidTooSmall(
            f"bid {bid} is below the minimum {min_forward_bid(auction.bid, increment)}"
        )


def _check_reverse(auction: BaseAuction, lot: Amount, increment: Decimal) -> None:
    if not auction.has_received_bids:
        if lot > auction.lot:
            raise BidTooSmall(f"lot {lot} is above the starting lot {auction.lot}")
        return

    if auction.lot.is_zero():
        raise BidTooSmall(f"lot is already {auction.lot}, it cannot be lowered further")
    if not meets_reverse_increment(auction.lot, lot, increment):
        raise BidTooSmall(
            f"lot {lot} is above the maximum {max_reverse_lot(auction.lot, increment)}"
        )


def _check_collateral_forward(auction: CollateralAuction, bid: Amount, increment: Decimal) -> None:
    if bid > auction.max_bid:
        raise BidExceedsCeiling(f"bid {bid} exceeds max bid {auction.max_bid}")

    # a bid of exactly max_bid always clears the hurdle
    if bid == auction.max_bid:
        return

    _check_forward(auction, bid, increment)


def validate_bid(
    auction: BaseAuction,
    bid: Amount,
    lot: Amount,
    params: AuctionParams,
    bidder: Optional[bytes] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Check a proposed bid against an auction's current state.

    Args:
        auction: Auction being bid on
        bid: Proposed bid amount
        lot: Proposed lot amount
        params: Parameters in force for this call
        bidder: Bidder address (checked when given)
        now: Current block time (expiry checked when given)

    Raises:
        AuctionExpired, InvalidBidder, InvalidBidDenom, InvalidLotDenom,
        InvalidBidTerms, BidTooSmall, BidExceedsCeiling
    """
    if now is not None and now >= auction.end_time:
        raise AuctionExpired(f"auction {auction.id} has closed (end time {auction.end_time.isoformat()})")

    if bidder is not None:
        valid, err = validate_address(bidder, "bidder")
        if not valid:
            raise InvalidBidder(err)

    if not isinstance(bid, Amount) or bid.denom != auction.bid.denom:
        raise InvalidBidDenom(f"bid denom must be {auction.bid.denom}, got {bid}")
    if not isinstance(lot, Amount) or lot.denom != auction.lot.denom:
        raise InvalidLotDenom(f"lot denom must be {auction.lot.denom}, got {lot}")

    increment = increment_for(auction, params)

    if auction.phase == AuctionPhase.FORWARD:
        if lot != auction.lot:
            raise InvalidBidTerms(f"lot is fixed at {auction.lot} in forward phase, got {lot}")
        if auction.kind == AuctionType.COLLATERAL:
            _check_collateral_forward(auction, bid, increment)
        else:
            _check_forward(auction, bid, increment)
        return

    if bid != auction.bid:
        raise InvalidBidTerms(f"bid is fixed at {auction.bid} in reverse phase, got {bid}")
    _check_reverse(auction, lot, increment)


def bid_terms(auction: BaseAuction, amount: Amount) -> Tuple[Amount, Amount]:
    """
    Map a single submitted amount to the (bid, lot) pair for the auction's
    current phase: a new bid in forward phase, a new lot in reverse phase.
    """
    if auction.phase == AuctionPhase.FORWARD:
        return amount, auction.lot
    return auction.bid, amount


def is_valid_bid(auction: BaseAuction, bid: Amount, lot: Amount, params: AuctionParams, **kwargs) -> Tuple[bool, str]:
    """Tuple-returning wrapper around validate_bid."""
    try:
        validate_bid(auction, bid, lot, params, **kwargs)
    except (AuctionExpired, InvalidBidder, InvalidBidDenom, InvalidLotDenom,
            InvalidBidTerms, BidTooSmall, BidExceedsCeiling) as exc:
        return False, str(exc)
    return True, ""


__all__ = [
    "validate_bid",
    "is_valid_bid",
    "bid_terms",
    "increment_for",
    "meets_forward_increment",
    "meets_reverse_increment",
    "min_forward_bid",
    "max_reverse_lot",
]
