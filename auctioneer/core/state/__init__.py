"""Custody service"""
from auctioneer.core.state.bank import Custody, InMemoryBank, new_bank

__all__ = [
    "Custody",
    "InMemoryBank",
    "new_bank",
]
