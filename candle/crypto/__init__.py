"""
Cryptographic primitives for the Candle Auction client.

This module provides:
- Keccak-256 hashing (EVM-compatible, not NIST SHA3-256)
- Text identifiers (keccak256 over UTF-8 bytes, same as ethers' `id`)
- Fixed-width 256-bit word encoding used by the ABI
- Hex and address helpers

Design Notes:
-------------
Keccak-256 comes from pycryptodome. The contract verifies reveals with
`keccak256(abi.encode(uint256, bytes32))`, so every byte produced here must
match the EVM encoding exactly.
"""

from Crypto.Hash import keccak


# =============================================================================
# Constants
# =============================================================================

WORD_SIZE = 32
UINT256_MAX = 2**256 - 1
ZERO_ADDRESS = "0x" + "00" * 20


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).
    
    Used for: commitments, salt derivation, address comparisons.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def keccak_text(text: str) -> bytes:
    """Hash the UTF-8 bytes of a string into a 32-byte digest."""
    return keccak256(text.encode("utf-8"))


# =============================================================================
# Word Encoding
# =============================================================================


def uint256_word(value: int) -> bytes:
    """
    Encode an unsigned integer as a 32-byte big-endian ABI word.
    
    Raises:
        ValueError: if value is negative or wider than 256 bits
    """
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"Value {value} out of uint256 range")
    return value.to_bytes(WORD_SIZE, byteorder="big")


def bytes32_word(data: bytes) -> bytes:
    """Validate a bytes32 value; static bytes32 words carry no padding."""
    if len(data) != WORD_SIZE:
        raise ValueError(f"Expected 32 bytes, got {len(data)}")
    return bytes(data)


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address comparison (checksum casing is ignored)."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


def is_zero_address(address: str) -> bool:
    """Whether the address is the all-zero placeholder returned for "nobody"."""
    return same_address(address, ZERO_ADDRESS)
