"""
Hashing and address primitives for the auction engine.

This module provides:
- Hashing functions (SHA-256, Keccak-256)
- Module account address derivation
- Hex conversion helpers used by the genesis codec

Design Notes:
-------------
Subsystems (the auction engine itself, the debt and liquidation modules)
hold funds in custody accounts that have no key pair. Their addresses are
derived deterministically from the module name so every node computes the
same account without coordination.
"""

import hashlib

from Crypto.Hash import keccak


# =============================================================================
# Constants
# =============================================================================

ADDRESS_LENGTH = 20

# Domain separator for module account derivation
DOMAIN_MODULE_ACCOUNT = b"module:"


# =============================================================================
# Hashing
# =============================================================================


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash.

    Used for: deriving demo account addresses.
    """
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Addresses
# =============================================================================


def module_address(module_name: str) -> bytes:
    """
    Derive the custody address of a module account.

    Address = last 20 bytes of keccak256("module:" || name).
    """
    if not module_name or not module_name.strip():
        raise ValueError("Module name cannot be blank")
    return keccak256(DOMAIN_MODULE_ACCOUNT + module_name.encode("utf-8"))[-ADDRESS_LENGTH:]


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 2 + 2 * ADDRESS_LENGTH:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def short_address(address: bytes) -> str:
    """Abbreviated hex form for log lines."""
    return bytes_to_hex(address)[:10]


__all__ = [
    "ADDRESS_LENGTH",
    "sha256",
    "keccak256",
    "module_address",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "short_address",
]
