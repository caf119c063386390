"""
Auction Engine - lifecycle state machine for on-ledger auctions.

Lifecycle:
---------
1. **Start**: a subsystem opens an auction. The engine allocates an ID,
   fixes ``end_time = max_end_time = now + max_auction_duration`` and moves
   the initial funds from the initiator's module account into the engine's
   custody account.
2. **Bid**: a bidder improves the current terms. The new bidder pays the
   previous bidder back directly and pays any bid increase into custody;
   ``end_time`` moves to ``min(now + bid_duration, max_end_time)``.
3. **Close**: at block end, every auction with ``end_time <= now`` is paid
   out and removed from the registry.

Fund flows per auction type:

    Surplus     start: lot -> custody       close: lot -> winner, bid burned
    Debt        start: debt -> custody      close: lot minted -> winner, debt -> initiator
    Collateral  start: lot, debt -> custody close: bid -> initiator, lot -> winner,
                                                   unsold lot -> lot_returns,
                                                   debt -> initiator

Atomicity:
---------
Every start, bid and close runs inside a checkpoint: the registry keeps
the ID counter and the one record the call touches, custody keeps an undo
log of its writes. If anything raises, both are rolled back and the call
leaves no trace. A failed close is still fatal, but the auction stays
stored exactly as it was, unpaid, so once the cause is fixed it can be
closed again and pays out once.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional, Tuple, Union

from auctioneer.core.auction.bidding import bid_terms, validate_bid
from auctioneer.core.auction.errors import (
    AuctionError,
    AuctionNotExpired,
    AuctionNotFound,
    CloseAuctionFailed,
    InsufficientFunds,
)
from auctioneer.core.auction.records import (
    AuctionType,
    BaseAuction,
    CollateralAuction,
    DebtAuction,
    SurplusAuction,
    new_collateral_auction,
    new_debt_auction,
    new_surplus_auction,
)
from auctioneer.core.config import AuctionParams, ParamStore
from auctioneer.core.registry import AuctionRegistry
from auctioneer.core.state.bank import Custody
from auctioneer.core.types import Amount, WeightedAddresses
from auctioneer.crypto import bytes_to_hex, module_address, short_address
from auctioneer.utils.logger import get_logger
from auctioneer.utils.validation import validate_timestamp

logger = get_logger("auction")


# =============================================================================
# Constants
# =============================================================================

MODULE_NAME = "auction"


# =============================================================================
# Close Result
# =============================================================================


@dataclass
class CloseResult:
    """
    Outcome of closing one auction.

    Attributes:
        auction_id: ID of the closed auction
        kind: Auction type
        initiator: Module that started the auction
        winner: Winning bidder, None if the auction received no bids
        lot_paid: Lot transferred or minted to the winner
        bid_burned: Winning bid destroyed (surplus)
        bid_paid: Winning bid paid to the initiator (collateral)
        returned_lot: Lot handed back to the initiator (no bids)
        lot_returns: Unsold lot paid to lot_returns, per address
        settled_debt: Debt covered by the auction
        unresolved_debt: Debt left for the initiator to re-auction
    """
    auction_id: int
    kind: AuctionType
    initiator: str
    winner: Optional[bytes] = None
    lot_paid: Optional[Amount] = None
    bid_burned: Optional[Amount] = None
    bid_paid: Optional[Amount] = None
    returned_lot: Optional[Amount] = None
    lot_returns: List[Tuple[bytes, Amount]] = field(default_factory=list)
    settled_debt: Optional[Amount] = None
    unresolved_debt: Optional[Amount] = None

    @property
    def received_bids(self) -> bool:
        return self.winner is not None

    def to_dict(self) -> dict:
        return {
            "auction_id": self.auction_id,
            "type": self.kind.value,
            "initiator": self.initiator,
            "winner": bytes_to_hex(self.winner) if self.winner else None,
            "lot_paid": str(self.lot_paid) if self.lot_paid else None,
            "bid_burned": str(self.bid_burned) if self.bid_burned else None,
            "bid_paid": str(self.bid_paid) if self.bid_paid else None,
            "returned_lot": str(self.returned_lot) if self.returned_lot else None,
            "lot_returns": [(bytes_to_hex(a), str(s)) for a, s in self.lot_returns],
            "settled_debt": str(self.settled_debt) if self.settled_debt else None,
            "unresolved_debt": str(self.unresolved_debt) if self.unresolved_debt else None,
        }


# =============================================================================
# Auction Engine
# =============================================================================


class AuctionEngine:
    """
    Runs auctions against an explicit registry, custody service and
    parameter source.

    All time-dependent calls take the current block time as ``now``; the
    engine never reads a clock of its own.
    """

    def __init__(
        self,
        registry: AuctionRegistry,
        custody: Custody,
        params: Union[ParamStore, AuctionParams, None] = None,
        module_name: str = MODULE_NAME,
    ):
        """
        Initialize the engine.

        Args:
            registry: Store of in-flight auctions
            custody: Custody/transfer service
            params: Parameter store or a fixed parameter set (defaults if None)
            module_name: Name of the engine's own custody account
        """
        self.registry = registry
        self.custody = custody
        self.params = params if isinstance(params, ParamStore) else ParamStore(params)
        self.module_name = module_name
        self.module_address = module_address(module_name)

        logger.info(f"AuctionEngine initialized, custody account {short_address(self.module_address)}")

    # =========================================================================
    # Helpers
    # =========================================================================

    @contextmanager
    def _atomic(self, auction_id: Optional[int] = None) -> Iterator[None]:
        """Undo every registry and custody change if the block raises."""
        checkpoint = self.registry.checkpoint(auction_id)
        mark = self.custody.begin()
        try:
            yield
        except BaseException:
            self.custody.rollback(mark)
            self.registry.rollback(checkpoint)
            raise
        self.custody.commit(mark)

    @staticmethod
    def _check_now(now: datetime) -> None:
        valid, err = validate_timestamp(now, "now")
        if not valid:
            raise ValueError(err)

    @staticmethod
    def _check_new(auction: BaseAuction) -> None:
        valid, err = auction.validate()
        if not valid:
            raise ValueError(f"invalid auction: {err}")

    def _store_new(self, auction: BaseAuction) -> int:
        auction.id = self.registry.next_id()
        self.registry.put(auction)
        return auction.id

    def get_auction(self, auction_id: int) -> BaseAuction:
        """Get an auction or raise AuctionNotFound."""
        auction = self.registry.get(auction_id)
        if auction is None:
            raise AuctionNotFound(auction_id)
        return auction

    # =========================================================================
    # Start
    # =========================================================================

    def start_surplus_auction(self, seller: str, lot: Amount, bid_denom: str, now: datetime) -> int:
        """
        Start a forward auction selling ``lot`` for bids in ``bid_denom``.

        Raises:
            ValueError: invalid inputs
            InsufficientFunds: seller cannot cover the lot
        """
        self._check_now(now)
        params = self.params.current()

        auction = new_surplus_auction(seller, lot, bid_denom, now + params.max_auction_duration)
        self._check_new(auction)

        with self._atomic():
            self.custody.send(module_address(seller), self.module_address, lot)
            auction_id = self._store_new(auction)

        logger.info(f"Surplus auction {auction_id} started by {seller}: lot={lot}, bid denom={bid_denom}")
        return auction_id

    def start_debt_auction(
        self,
        buyer: str,
        bid: Amount,
        initial_lot: Amount,
        debt: Amount,
        now: datetime,
    ) -> int:
        """
        Start a reverse auction raising ``bid`` by minting at most ``initial_lot``.

        The corresponding debt is held in custody until close.

        Raises:
            ValueError: invalid inputs
            InsufficientFunds: buyer cannot cover the debt
        """
        self._check_now(now)
        params = self.params.current()

        auction = new_debt_auction(buyer, bid, initial_lot, now + params.max_auction_duration, debt)
        self._check_new(auction)

        with self._atomic():
            self.custody.send(module_address(buyer), self.module_address, debt)
            auction_id = self._store_new(auction)

        logger.info(f"Debt auction {auction_id} started by {buyer}: bid={bid}, initial lot={initial_lot}, debt={debt}")
        return auction_id

    def start_collateral_auction(
        self,
        seller: str,
        lot: Amount,
        max_bid: Amount,
        lot_returns: WeightedAddresses,
        debt: Amount,
        now: datetime,
    ) -> int:
        """
        Start a two-phase auction selling collateral ``lot`` for up to ``max_bid``.

        Raises:
            ValueError: invalid inputs
            InsufficientFunds: seller cannot cover the lot or debt
        """
        self._check_now(now)
        params = self.params.current()

        auction = new_collateral_auction(
            seller, lot, now + params.max_auction_duration, max_bid, lot_returns, debt,
        )
        self._check_new(auction)

        with self._atomic():
            seller_address = module_address(seller)
            self.custody.send(seller_address, self.module_address, lot)
            self.custody.send(seller_address, self.module_address, debt)
            auction_id = self._store_new(auction)

        logger.info(
            f"Collateral auction {auction_id} started by {seller}: lot={lot}, "
            f"max bid={max_bid}, debt={debt}, {len(lot_returns)} lot returns"
        )
        return auction_id

    # =========================================================================
    # Bidding
    # =========================================================================

    def place_bid(
        self,
        auction_id: int,
        bidder: bytes,
        bid: Amount,
        lot: Amount,
        now: datetime,
    ) -> BaseAuction:
        """
        Replace an auction's terms with an improved (bid, lot) pair.

        Args:
            auction_id: Auction to bid on
            bidder: Bidder address
            bid: Proposed bid
            lot: Proposed lot
            now: Current block time

        Returns:
            The updated auction

        Raises:
            AuctionNotFound, AuctionExpired, InvalidBidder, InvalidBidDenom,
            InvalidLotDenom, InvalidBidTerms, BidTooSmall, BidExceedsCeiling,
            InsufficientFunds
        """
        self._check_now(now)
        params = self.params.current()
        auction = self.get_auction(auction_id)

        try:
            validate_bid(auction, bid, lot, params, bidder=bidder, now=now)
        except AuctionError as exc:
            logger.debug(f"Bid rejected on auction {auction_id}: {exc.code}: {exc}")
            raise

        with self._atomic(auction_id):
            self._collect_bid(auction, bidder, bid)

            auction.end_time = min(now + params.bid_duration, auction.max_end_time)
            auction.has_received_bids = True
            auction.bid = bid
            auction.lot = lot
            auction.bidder = bidder

        logger.info(
            f"Bid on auction {auction_id} by {short_address(bidder)}: bid={bid}, lot={lot}, "
            f"phase={auction.phase.value}, ends {auction.end_time.isoformat()}"
        )
        return auction

    def submit_bid(self, auction_id: int, bidder: bytes, amount: Amount, now: datetime) -> BaseAuction:
        """
        Bid a single amount: a new bid in forward phase, a new lot in
        reverse phase.
        """
        auction = self.get_auction(auction_id)
        bid, lot = bid_terms(auction, amount)
        return self.place_bid(auction_id, bidder, bid, lot, now)

    def _collect_bid(self, auction: BaseAuction, bidder: bytes, bid: Amount) -> None:
        """
        Move funds for an accepted bid.

        The new bidder repays the previous bidder's contribution directly
        (for a debt auction's first bid the previous bidder is the
        initiator's module account) and pays the bid increase into custody.
        """
        previous_bidder = auction.bidder
        previous_bid = auction.bid

        if previous_bidder is not None and previous_bidder != bidder and not previous_bid.is_zero():
            self.custody.send(bidder, previous_bidder, previous_bid)

        increase = bid - previous_bid
        if not increase.is_zero():
            self.custody.send(bidder, self.module_address, increase)

    # =========================================================================
    # Close
    # =========================================================================

    def close_auction(self, auction_id: int, now: datetime) -> Optional[CloseResult]:
        """
        Pay out an expired auction and remove it from the registry.

        Closing an ID that is not stored is a no-op and returns None, so a
        sweep interrupted part way can simply be run again.

        Raises:
            AuctionNotExpired: ``now`` is before the auction's end time
            CloseAuctionFailed: a payout failed (fatal). Nothing is paid and
                the auction stays stored unchanged.
        """
        self._check_now(now)
        auction = self.registry.get(auction_id)
        if auction is None:
            return None

        if now < auction.end_time:
            raise AuctionNotExpired(
                f"auction {auction_id} ends at {auction.end_time.isoformat()}, now {now.isoformat()}"
            )

        try:
            with self._atomic(auction_id):
                result = self._payout(auction)
                self.registry.delete(auction_id)
        except (InsufficientFunds, ValueError) as exc:
            logger.critical(f"Closing auction {auction_id} failed, payout rolled back: {exc}")
            raise CloseAuctionFailed(auction_id, str(exc)) from exc

        if result.received_bids:
            logger.info(f"Auction {auction_id} closed: winner {short_address(result.winner)}, lot={result.lot_paid}")
        else:
            logger.info(f"Auction {auction_id} closed without bids")
        return result

    def close_expired_auctions(self, now: datetime) -> List[CloseResult]:
        """
        Close every auction whose end time has passed, ordered by end time
        then ID.
        """
        self._check_now(now)
        results = []
        for auction_id, _ in self.registry.iterate_expired(now):
            result = self.close_auction(auction_id, now)
            if result is not None:
                results.append(result)

        if results:
            logger.info(f"Closed {len(results)} expired auction(s) at {now.isoformat()}")
        return results

    def _payout(self, auction: BaseAuction) -> CloseResult:
        if auction.kind == AuctionType.SURPLUS:
            return self._payout_surplus(auction)
        if auction.kind == AuctionType.DEBT:
            return self._payout_debt(auction)
        if auction.kind == AuctionType.COLLATERAL:
            return self._payout_collateral(auction)
        raise ValueError(f"unrecognized auction type: {auction.kind}")

    def _payout_surplus(self, auction: SurplusAuction) -> CloseResult:
        result = CloseResult(auction.id, auction.kind, auction.initiator)

        if not auction.has_received_bids:
            self.custody.send(self.module_address, module_address(auction.initiator), auction.lot)
            result.returned_lot = auction.lot
            return result

        self.custody.send(self.module_address, auction.bidder, auction.lot)
        self.custody.burn(self.module_address, auction.bid)
        result.winner = auction.bidder
        result.lot_paid = auction.lot
        result.bid_burned = auction.bid
        return result

    def _payout_debt(self, auction: DebtAuction) -> CloseResult:
        result = CloseResult(auction.id, auction.kind, auction.initiator)
        initiator_address = module_address(auction.initiator)

        self.custody.send(self.module_address, initiator_address, auction.corresponding_debt)

        if not auction.has_received_bids:
            # nothing was minted; the initiator decides whether to re-auction
            result.unresolved_debt = auction.corresponding_debt
            return result

        self.custody.mint(auction.bidder, auction.lot)
        result.winner = auction.bidder
        result.lot_paid = auction.lot
        result.settled_debt = auction.corresponding_debt
        return result

    def _payout_collateral(self, auction: CollateralAuction) -> CloseResult:
        result = CloseResult(auction.id, auction.kind, auction.initiator)
        initiator_address = module_address(auction.initiator)

        self.custody.send(self.module_address, initiator_address, auction.corresponding_debt)

        if not auction.has_received_bids:
            self.custody.send(self.module_address, initiator_address, auction.lot)
            result.returned_lot = auction.lot
            result.unresolved_debt = auction.corresponding_debt
            return result

        self.custody.send(self.module_address, initiator_address, auction.bid)
        self.custody.send(self.module_address, auction.bidder, auction.lot)
        result.winner = auction.bidder
        result.lot_paid = auction.lot
        result.bid_paid = auction.bid
        result.settled_debt = auction.corresponding_debt

        unsold = auction.unsold_lot
        if not unsold.is_zero():
            for address, share in auction.lot_returns.split(unsold):
                self.custody.send(self.module_address, address, share)
                result.lot_returns.append((address, share))

        return result

    # =========================================================================
    # Stats
    # =========================================================================

    def stats(self) -> dict:
        """Get engine statistics."""
        return {
            **self.registry.stats(),
            "module_account": bytes_to_hex(self.module_address),
            "params": self.params.current(),
        }


__all__ = ["AuctionEngine", "CloseResult", "MODULE_NAME"]
