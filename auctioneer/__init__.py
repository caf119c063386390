"""
Auctioneer

A deterministic on-ledger auction engine:
- Surplus auctions (forward, bid burned)
- Debt auctions (reverse, lot minted)
- Collateral auctions (forward then reverse, unsold lot returned by weight)
- Genesis snapshot export/import
"""

__version__ = "0.1.0"
