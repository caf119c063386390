"""
Auction Records - the persisted state of one in-flight auction.

Conceptual Background:
---------------------
Three auction types share a common base:

1. **Surplus**: forward auction. Sells a fixed lot; bidders raise the bid,
   which is burned when the auction closes.
2. **Debt**: reverse auction. The bid (amount the initiator needs raised)
   is fixed; bidders lower the lot, which is minted to the winner.
3. **Collateral**: two-phase. Forward while ``bid < max_bid``; once a bid
   reaches ``max_bid`` the auction is in reverse phase for good and bidders
   lower the lot. Unsold lot goes back to ``lot_returns`` by weight.

Phase is always derived from the record, never stored. Engine code
dispatches on ``kind`` rather than on overridden methods, so the bidding
and payout rules for all three types live side by side.
"""

import copy
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple

from auctioneer.core.types import Amount, WeightedAddresses
from auctioneer.crypto import bytes_to_hex, module_address
from auctioneer.utils.validation import validate_address, validate_string, validate_timestamp


# =============================================================================
# Enums
# =============================================================================


class AuctionType(str, Enum):
    """Variant tag, also used as the serialized ``type`` field."""
    SURPLUS = "surplus"
    DEBT = "debt"
    COLLATERAL = "collateral"


class AuctionPhase(str, Enum):
    """Which side of the auction bidders are moving."""
    FORWARD = "forward"     # bid rises, lot fixed
    REVERSE = "reverse"     # lot falls, bid fixed


# =============================================================================
# Base Auction
# =============================================================================


@dataclass(kw_only=True)
class BaseAuction:
    """
    Fields shared by every auction type.

    Attributes:
        id: Registry ID (0 until the auction is stored)
        initiator: Module name that started the auction and pays out the lot
        lot: Amount paid out to the winning bidder
        bid: Amount paid into the auction by the current bidder
        bidder: Current leading bidder, None before the first bid
        has_received_bids: Whether any bid has been accepted
        end_time: Current scheduled close
        max_end_time: Hard ceiling for end_time, fixed at start
    """
    kind: ClassVar[AuctionType]

    id: int = 0
    initiator: str
    lot: Amount
    bid: Amount
    end_time: datetime
    max_end_time: datetime
    bidder: Optional[bytes] = None
    has_received_bids: bool = False

    @property
    def phase(self) -> AuctionPhase:
        return AuctionPhase.FORWARD

    def validate(self) -> Tuple[bool, str]:
        """
        Check the record's internal invariants.

        Returns:
            (is_valid, error_message)
        """
        valid, err = validate_string(self.initiator, "auction initiator")
        if not valid:
            return False, err

        for name in ("lot", "bid"):
            value = getattr(self, name)
            if not isinstance(value, Amount):
                return False, f"invalid {name}: {value!r}"
            valid, err = value.validate()
            if not valid:
                return False, f"invalid {name}: {err}"

        # bidder can be empty for surplus and collateral auctions
        if self.bidder is not None:
            valid, err = validate_address(self.bidder, "bidder")
            if not valid:
                return False, err

        if self.end_time is None or self.max_end_time is None:
            return False, "end time cannot be zero"
        for name in ("end_time", "max_end_time"):
            valid, err = validate_timestamp(getattr(self, name), name)
            if not valid:
                return False, err
        if self.end_time > self.max_end_time:
            return False, f"MaxEndTime < EndTime ({self.max_end_time} < {self.end_time})"

        return True, ""

    def module_account_coins(self) -> List[Amount]:
        """Amounts the engine's custody account holds for this auction."""
        raise NotImplementedError

    def with_id(self, auction_id: int) -> "BaseAuction":
        """Return a copy of the auction with the ID set."""
        auction = copy.deepcopy(self)
        auction.id = auction_id
        return auction

    def __str__(self) -> str:
        bidder = bytes_to_hex(self.bidder) if self.bidder else "-"
        return (
            f"{self.kind.value.capitalize()}Auction {self.id}: "
            f"initiator={self.initiator} lot={self.lot} bid={self.bid} "
            f"bidder={bidder} phase={self.phase.value} "
            f"end={self.end_time.isoformat()} max_end={self.max_end_time.isoformat()}"
        )


# =============================================================================
# Variants
# =============================================================================


@dataclass(kw_only=True)
class SurplusAuction(BaseAuction):
    """
    Forward auction that burns what it receives from bids.

    Normally used to sell off excess stable asset held by the system.
    """
    kind: ClassVar[AuctionType] = AuctionType.SURPLUS

    def module_account_coins(self) -> List[Amount]:
        # bid increments accumulate in custody until they are burned at close
        return [self.lot, self.bid]


@dataclass(kw_only=True)
class DebtAuction(BaseAuction):
    """
    Reverse auction that mints what it pays out.

    Normally used to raise stable asset to cover debt that selling
    collateral did not cover.
    """
    kind: ClassVar[AuctionType] = AuctionType.DEBT

    corresponding_debt: Amount

    @property
    def phase(self) -> AuctionPhase:
        return AuctionPhase.REVERSE

    def validate(self) -> Tuple[bool, str]:
        if not isinstance(self.corresponding_debt, Amount):
            return False, f"invalid corresponding debt: {self.corresponding_debt!r}"
        valid, err = self.corresponding_debt.validate()
        if not valid:
            return False, f"invalid corresponding debt: {err}"
        return super().validate()

    def module_account_coins(self) -> List[Amount]:
        # the lot is minted at close and bids are paid straight to the
        # previous bidder, so only the debt is held
        return [self.corresponding_debt]


@dataclass(kw_only=True)
class CollateralAuction(BaseAuction):
    """
    Two-phase auction for collateral seized from liquidated positions.

    Attributes:
        corresponding_debt: Debt the sale is covering
        max_bid: Forward-phase ceiling; reaching it flips to reverse phase
        lot_returns: Owners of any lot left unsold, by weight
        initial_lot: Lot at auction start, for computing the unsold remainder
    """
    kind: ClassVar[AuctionType] = AuctionType.COLLATERAL

    corresponding_debt: Amount
    max_bid: Amount
    lot_returns: WeightedAddresses
    initial_lot: Optional[Amount] = None

    def __post_init__(self) -> None:
        if self.initial_lot is None:
            self.initial_lot = self.lot

    def is_reverse_phase(self) -> bool:
        return self.bid == self.max_bid

    @property
    def phase(self) -> AuctionPhase:
        if self.is_reverse_phase():
            return AuctionPhase.REVERSE
        return AuctionPhase.FORWARD

    @property
    def unsold_lot(self) -> Amount:
        return self.initial_lot - self.lot

    def validate(self) -> Tuple[bool, str]:
        for name in ("corresponding_debt", "max_bid", "initial_lot"):
            value = getattr(self, name)
            if not isinstance(value, Amount):
                return False, f"invalid {name.replace('_', ' ')}: {value!r}"
            valid, err = value.validate()
            if not valid:
                return False, f"invalid {name.replace('_', ' ')}: {err}"

        valid, err = self.lot_returns.validate()
        if not valid:
            return False, f"invalid lot returns: {err}"

        valid, err = super().validate()
        if not valid:
            return False, err

        if self.max_bid.denom != self.bid.denom:
            return False, f"max bid denom {self.max_bid.denom} != bid denom {self.bid.denom}"
        if self.bid > self.max_bid:
            return False, f"bid {self.bid} exceeds max bid {self.max_bid}"
        if self.initial_lot.denom != self.lot.denom:
            return False, f"initial lot denom {self.initial_lot.denom} != lot denom {self.lot.denom}"
        if self.lot > self.initial_lot:
            return False, f"lot {self.lot} exceeds initial lot {self.initial_lot}"

        return True, ""

    def module_account_coins(self) -> List[Amount]:
        # the unsold part of the lot stays in custody until close
        return [self.initial_lot, self.corresponding_debt, self.bid]


Auction = BaseAuction


# =============================================================================
# Constructors
# =============================================================================


def new_surplus_auction(
    seller: str,
    lot: Amount,
    bid_denom: str,
    end_time: datetime,
) -> SurplusAuction:
    """Create a surplus auction with no ID and no bids."""
    return SurplusAuction(
        initiator=seller,
        lot=lot,
        bid=Amount.zero(bid_denom),
        bidder=None,
        has_received_bids=False,
        end_time=end_time,
        max_end_time=end_time,
    )


def new_debt_auction(
    buyer: str,
    bid: Amount,
    initial_lot: Amount,
    end_time: datetime,
    debt: Amount,
) -> DebtAuction:
    """
    Create a debt auction with no ID and no bids.

    The bidder starts as the buyer's module address, so the first real
    bidder's payment goes to the buyer through the normal refund path.
    """
    return DebtAuction(
        initiator=buyer,
        lot=initial_lot,
        bid=bid,
        bidder=module_address(buyer),
        has_received_bids=False,
        end_time=end_time,
        max_end_time=end_time,
        corresponding_debt=debt,
    )


def new_collateral_auction(
    seller: str,
    lot: Amount,
    end_time: datetime,
    max_bid: Amount,
    lot_returns: WeightedAddresses,
    debt: Amount,
) -> CollateralAuction:
    """Create a collateral auction with no ID and no bids."""
    return CollateralAuction(
        initiator=seller,
        lot=lot,
        bid=Amount.zero(max_bid.denom),
        bidder=None,
        has_received_bids=False,
        end_time=end_time,
        max_end_time=end_time,
        corresponding_debt=debt,
        max_bid=max_bid,
        lot_returns=lot_returns,
        initial_lot=lot,
    )


def sum_coins(amounts: List[Amount]) -> Dict[str, int]:
    """Total units per denomination, skipping zero amounts."""
    totals: Dict[str, int] = {}
    for amount in amounts:
        if amount.is_zero():
            continue
        totals[amount.denom] = totals.get(amount.denom, 0) + amount.units
    return totals


__all__ = [
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
]
