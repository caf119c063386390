"""
Genesis Module.

Snapshot export/import of the registry and parameters.
"""

from auctioneer.core.genesis.codec import (
    GenesisState,
    auction_to_model,
    validate_genesis,
    load_genesis,
    export_genesis,
    init_genesis,
    default_genesis,
    write_genesis,
    read_genesis,
)

__all__ = [
    "GenesisState",
    "auction_to_model",
    "validate_genesis",
    "load_genesis",
    "export_genesis",
    "init_genesis",
    "default_genesis",
    "write_genesis",
    "read_genesis",
]
