"""
Commitment Encoder - Binds a bidder to an amount without revealing it.

Encoding (must match the contract bit-for-bit):

    salt = keccak256(utf8(secret))
    hash = keccak256(abi.encode(uint256 bidAmountWei, bytes32 salt))

abi.encode of two static fields is exactly two 32-byte words with no
length prefix, so the preimage is always 64 bytes. The salt is derived
from the secret instead of being used raw; the secret string is the only
thing a bidder must remember between commit and reveal.
"""

from dataclasses import dataclass

from candle.core.errors import InvalidInputError
from candle.crypto import (
    bytes_to_hex,
    bytes32_word,
    keccak256,
    keccak_text,
    uint256_word,
)
from candle.utils.validation import validate_secret, validate_wei_amount


@dataclass(frozen=True)
class Commitment:
    """
    A bid commitment.
    
    Created per commit/reveal attempt and never persisted.
    """
    bid_amount_wei: int
    salt: bytes   # 32 bytes
    hash: bytes   # 32 bytes

    @property
    def hash_hex(self) -> str:
        return bytes_to_hex(self.hash)

    @property
    def salt_hex(self) -> str:
        return bytes_to_hex(self.salt)

    def matches(self, bid_amount_wei: int, secret: str) -> bool:
        """Whether (amount, secret) reproduces this commitment."""
        return encode_commitment(bid_amount_wei, secret) == self.hash


def _check_inputs(bid_amount_wei: int, secret: str) -> None:
    ok, err = validate_wei_amount(bid_amount_wei)
    if not ok:
        raise InvalidInputError(err)
    ok, err = validate_secret(secret)
    if not ok:
        raise InvalidInputError(err)


def derive_salt(secret: str) -> bytes:
    """
    Derive the 32-byte salt from a secret string.
    
    Raises:
        InvalidInputError: if the secret is empty or not a string
    """
    ok, err = validate_secret(secret)
    if not ok:
        raise InvalidInputError(err)
    return keccak_text(secret)


def abi_encode_bid(bid_amount_wei: int, salt: bytes) -> bytes:
    """abi.encode(uint256, bytes32): two big-endian 32-byte words."""
    return uint256_word(bid_amount_wei) + bytes32_word(salt)


def encode_commitment(bid_amount_wei: int, secret: str) -> bytes:
    """
    Compute the commitment hash for a bid.
    
    Args:
        bid_amount_wei: Bid in wei (0 <= amount < 2**256)
        secret: Non-empty secret string
        
    Returns:
        32-byte commitment hash
        
    Raises:
        InvalidInputError: on out-of-range amount or empty secret
    """
    _check_inputs(bid_amount_wei, secret)
    return keccak256(abi_encode_bid(bid_amount_wei, keccak_text(secret)))


def create_commitment(bid_amount_wei: int, secret: str) -> Commitment:
    """Build the full Commitment (amount, salt, hash) for a bid."""
    _check_inputs(bid_amount_wei, secret)
    salt = keccak_text(secret)
    return Commitment(
        bid_amount_wei=bid_amount_wei,
        salt=salt,
        hash=keccak256(abi_encode_bid(bid_amount_wei, salt)),
    )


def verify_commitment(commitment_hash: bytes, bid_amount_wei: int, salt: bytes) -> bool:
    """
    Check a revealed (amount, salt) pair against a stored hash.
    
    This is the check the contract performs on revealBid.
    """
    try:
        return keccak256(abi_encode_bid(bid_amount_wei, salt)) == commitment_hash
    except ValueError:
        return False
