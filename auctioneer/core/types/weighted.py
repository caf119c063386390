"""
WeightedAddresses - proportional payout list.

Used to hand the unsold part of a collateral auction's lot back to the
accounts it was seized from, in proportion to how much each contributed.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from auctioneer.core.types.amount import Amount
from auctioneer.utils.validation import validate_address, validate_integer


@dataclass
class WeightedAddresses:
    """
    Parallel lists of addresses and non-negative integer weights.

    Attributes:
        addresses: 20-byte account addresses (duplicates allowed)
        weights: Weight of each address, same length as addresses
    """
    addresses: List[bytes] = field(default_factory=list)
    weights: List[int] = field(default_factory=list)

    def validate(self) -> Tuple[bool, str]:
        """
        Checks that the weights are not negative, not all zero, and the
        lengths match.
        """
        if len(self.weights) < 1:
            return False, "must be at least 1 weighted address"

        if len(self.addresses) != len(self.weights):
            return False, (
                f"number of addresses doesn't match number of weights, "
                f"{len(self.addresses)} != {len(self.weights)}"
            )

        total_weight = 0
        for i, (address, weight) in enumerate(zip(self.addresses, self.weights)):
            valid, err = validate_address(address, f"address {i}")
            if not valid:
                return False, err
            valid, err = validate_integer(weight, f"weight {i}", max_val=2**256)
            if not valid:
                return False, err
            total_weight += weight

        if total_weight <= 0:
            return False, "total weight must be positive"

        return True, ""

    @property
    def total_weight(self) -> int:
        return sum(self.weights)

    def split(self, amount: Amount) -> List[Tuple[bytes, Amount]]:
        """
        Pro-rate an amount across the addresses by weight.

        Each share is ``units * weight // total_weight``. Whatever integer
        division leaves over is added to the first address, so the shares
        always sum to exactly ``amount``.

        Returns:
            (address, share) pairs in list order
        """
        valid, err = self.validate()
        if not valid:
            raise ValueError(f"invalid weighted addresses: {err}")

        total = self.total_weight
        shares = [amount.units * weight // total for weight in self.weights]
        shares[0] += amount.units - sum(shares)

        return [
            (address, amount.with_units(units))
            for address, units in zip(self.addresses, shares)
        ]

    def __len__(self) -> int:
        return len(self.addresses)


def new_weighted_addresses(addresses: List[bytes], weights: List[int]) -> WeightedAddresses:
    """Build a WeightedAddresses, raising ValueError if it is invalid."""
    wa = WeightedAddresses(addresses=list(addresses), weights=list(weights))
    valid, err = wa.validate()
    if not valid:
        raise ValueError(err)
    return wa


__all__ = ["WeightedAddresses", "new_weighted_addresses"]
