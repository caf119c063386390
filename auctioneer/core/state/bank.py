"""
Bank - custody and transfer service used by the auction engine.

Conceptual Background:
---------------------
The engine never holds balances itself. Every fund movement goes through
a custody service with three primitives:

1. **send**: move an amount between two accounts
2. **mint**: create new supply into an account
3. **burn**: destroy supply held by an account

Each primitive is atomic and immediately visible to the next call in the
same step. ``begin()`` opens a rollback mark; while a mark is open every
balance and supply write is recorded in an undo log, and ``rollback(mark)``
replays it backwards so a failed multi-step operation leaves balances
exactly as they were. Marks nest; ``commit(mark)`` keeps the changes and
drops the log once the outermost mark closes.

InMemoryBank is the reference implementation used by tests, the demo and
genesis reconciliation.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple

from auctioneer.core.auction.errors import InsufficientFunds
from auctioneer.core.types import Amount
from auctioneer.crypto import module_address, short_address
from auctioneer.utils.logger import get_logger
from auctioneer.utils.validation import validate_address

logger = get_logger("bank")

_MISSING = object()


class Custody(Protocol):
    """Interface the engine needs from the custody service."""

    def send(self, from_address: bytes, to_address: bytes, amount: Amount) -> None: ...

    def mint(self, to_address: bytes, amount: Amount) -> None: ...

    def burn(self, from_address: bytes, amount: Amount) -> None: ...

    def balance(self, address: bytes, denom: str) -> Amount: ...

    def begin(self) -> Any: ...

    def commit(self, mark: Any) -> None: ...

    def rollback(self, mark: Any) -> None: ...


class InMemoryBank:
    """
    Account balances with supply tracking.

    Attributes:
        balances: address -> denom -> units
        supply: denom -> total units in existence
    """

    def __init__(self):
        self.balances: Dict[bytes, Dict[str, int]] = {}
        self.supply: Dict[str, int] = {}

        # Cumulative mint/burn totals, for conservation checks
        self.minted: Dict[str, int] = {}
        self.burned: Dict[str, int] = {}

        # (table, key, previous value) for every write since the outermost open mark
        self._journal: List[Tuple[Dict, Any, Any]] = []
        self._depth = 0

    # =========================================================================
    # State Access
    # =========================================================================

    def balance(self, address: bytes, denom: str) -> Amount:
        """Get balance of an address in one denomination."""
        return Amount(denom, self.balances.get(address, {}).get(denom, 0))

    def module_balance(self, module_name: str, denom: str) -> Amount:
        return self.balance(module_address(module_name), denom)

    def balances_of(self, address: bytes) -> Dict[str, int]:
        """Non-zero balances of an address."""
        return {denom: units for denom, units in self.balances.get(address, {}).items() if units}

    def total_supply(self, denom: str) -> Amount:
        return Amount(denom, self.supply.get(denom, 0))

    # =========================================================================
    # Transfers
    # =========================================================================

    def send(self, from_address: bytes, to_address: bytes, amount: Amount) -> None:
        """
        Move an amount between accounts.

        Raises:
            InsufficientFunds: sender balance below amount
        """
        self._check_address(from_address)
        self._check_address(to_address)
        if amount.is_zero():
            return

        self._debit(from_address, amount)
        self._credit(to_address, amount)
        logger.debug(f"send {amount} {short_address(from_address)} -> {short_address(to_address)}")

    def mint(self, to_address: bytes, amount: Amount) -> None:
        """Create new supply into an account."""
        self._check_address(to_address)
        if amount.is_zero():
            return

        self._credit(to_address, amount)
        self._add(self.supply, amount.denom, amount.units)
        self._add(self.minted, amount.denom, amount.units)
        logger.debug(f"mint {amount} -> {short_address(to_address)}")

    def burn(self, from_address: bytes, amount: Amount) -> None:
        """
        Destroy supply held by an account.

        Raises:
            InsufficientFunds: holder balance below amount
        """
        self._check_address(from_address)
        if amount.is_zero():
            return

        self._debit(from_address, amount)
        self._add(self.supply, amount.denom, -amount.units)
        self._add(self.burned, amount.denom, amount.units)
        logger.debug(f"burn {amount} <- {short_address(from_address)}")

    def _debit(self, address: bytes, amount: Amount) -> None:
        available = self.balances.get(address, {}).get(amount.denom, 0)
        if available < amount.units:
            raise InsufficientFunds(
                f"insufficient funds: {short_address(address)} has "
                f"{Amount(amount.denom, available)}, needs {amount}"
            )
        self._add(self.balances[address], amount.denom, -amount.units)

    def _credit(self, address: bytes, amount: Amount) -> None:
        self._add(self.balances.setdefault(address, {}), amount.denom, amount.units)

    def _add(self, table: Dict[str, int], key: str, delta: int) -> None:
        if self._depth:
            self._journal.append((table, key, table.get(key, _MISSING)))
        table[key] = table.get(key, 0) + delta

    @staticmethod
    def _check_address(address: bytes) -> None:
        valid, err = validate_address(address)
        if not valid:
            raise ValueError(err)

    # =========================================================================
    # Rollback
    # =========================================================================

    def begin(self) -> int:
        """
        Open a rollback mark.

        Returns:
            Mark to pass to commit() or rollback()
        """
        self._depth += 1
        return len(self._journal)

    def commit(self, mark: int) -> None:
        """Keep every change since the mark."""
        self._close_mark()

    def rollback(self, mark: int) -> None:
        """Undo every balance and supply change made since the mark."""
        while len(self._journal) > mark:
            table, key, previous = self._journal.pop()
            if previous is _MISSING:
                del table[key]
            else:
                table[key] = previous
        self._close_mark()

    def _close_mark(self) -> None:
        if self._depth == 0:
            raise RuntimeError("no open rollback mark")
        self._depth -= 1
        if self._depth == 0:
            self._journal.clear()

    def state(self) -> Dict[str, Dict]:
        """Non-zero balances and supply, for comparing bank states."""
        balances = {}
        for address in self.balances:
            held = self.balances_of(address)
            if held:
                balances[address] = held
        return {
            "balances": balances,
            "supply": {denom: units for denom, units in self.supply.items() if units},
        }

    # =========================================================================
    # Genesis
    # =========================================================================

    def create_genesis(self, initial_allocations: List[Tuple[bytes, Amount]]) -> None:
        """
        Mint initial balances.

        Args:
            initial_allocations: List of (address, amount) tuples
        """
        for address, amount in initial_allocations:
            self.mint(address, amount)

        logger.info(f"Bank genesis: {len(initial_allocations)} allocations")

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"InMemoryBank(accounts={len(self.balances)}, denoms={len(self.supply)})"

    def stats(self) -> dict:
        """Get bank statistics."""
        return {
            "accounts": len(self.balances),
            "supply": dict(self.supply),
            "minted": dict(self.minted),
            "burned": dict(self.burned),
        }


def new_bank(allocations: Optional[List[Tuple[bytes, Amount]]] = None) -> InMemoryBank:
    bank = InMemoryBank()
    if allocations:
        bank.create_genesis(allocations)
    return bank


__all__ = ["Custody", "InMemoryBank", "new_bank"]
