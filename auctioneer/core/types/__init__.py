"""Money and weighted-distribution primitives"""
from auctioneer.core.types.amount import Amount, AMOUNT_DECIMALS, UNIT_SCALE, to_units
from auctioneer.core.types.weighted import WeightedAddresses, new_weighted_addresses

__all__ = [
    "Amount",
    "AMOUNT_DECIMALS",
    "UNIT_SCALE",
    "to_units",
    "WeightedAddresses",
    "new_weighted_addresses",
]
