"""
Input Validation - Sanitization for user-supplied auction inputs.

Provides validation for:
- Bid amounts (ether strings and integer wei)
- Bid secrets
- Contract and account addresses
- Durations passed to startAuction

Amounts are never handled as floats: ether strings go through Decimal and
eth_utils unit conversion to exact integer wei.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Tuple

from eth_utils import from_wei, to_wei

from candle.crypto import UINT256_MAX, is_valid_address

# =============================================================================
# Constants
# =============================================================================

ETHER_DECIMALS = 18
MAX_SECRET_LENGTH = 1024
MAX_DURATION = 2**64 - 1


# =============================================================================
# Validation Functions
# =============================================================================


def validate_wei_amount(value: Any, name: str = "bid_amount_wei") -> Tuple[bool, str]:
    """
    Validate an integer wei amount.
    
    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass; True must not become 1 wei
    if isinstance(value, bool) or not isinstance(value, int):
        return False, f"{name} must be an integer, got {type(value).__name__}"
    
    if value < 0:
        return False, f"{name} must be non-negative, got {value}"
    
    if value > UINT256_MAX:
        return False, f"{name} exceeds uint256 range"
    
    return True, ""


def validate_secret(secret: Any) -> Tuple[bool, str]:
    """Validate a bid secret string."""
    if not isinstance(secret, str):
        return False, f"secret must be a string, got {type(secret).__name__}"
    
    if not secret:
        return False, "secret must not be empty"
    
    if len(secret) > MAX_SECRET_LENGTH:
        return False, f"secret exceeds max length {MAX_SECRET_LENGTH}"
    
    return True, ""


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate a 0x-prefixed 20-byte hex address."""
    if not is_valid_address(address):
        return False, f"{name} is not a valid address: {address!r}"
    return True, ""


def validate_duration(seconds: Any, name: str = "duration") -> Tuple[bool, str]:
    """Validate a phase duration in seconds."""
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        return False, f"{name} must be an integer"
    
    if seconds <= 0 or seconds > MAX_DURATION:
        return False, f"{name} must be in [1, {MAX_DURATION}], got {seconds}"
    
    return True, ""


# =============================================================================
# Unit Conversion
# =============================================================================


def parse_ether(amount: str) -> int:
    """
    Convert a decimal ether string to integer wei.
    
    Args:
        amount: Ether amount, e.g. "1.5"
        
    Returns:
        Amount in wei
        
    Raises:
        ValueError: on malformed, negative or sub-wei input
    """
    if not isinstance(amount, str) or not amount.strip():
        raise ValueError("Bid amount must be a non-empty string")
    
    try:
        d = Decimal(amount.strip())
    except InvalidOperation:
        raise ValueError(f"Invalid ether amount: {amount!r}")
    
    if not d.is_finite():
        raise ValueError(f"Invalid ether amount: {amount!r}")
    
    if d < 0:
        raise ValueError(f"Ether amount must be non-negative: {amount!r}")
    
    with localcontext() as ctx:
        ctx.prec = 999
        scaled = d.scaleb(ETHER_DECIMALS)
        fractional = scaled != scaled.to_integral_value()
    if fractional:
        raise ValueError(f"Ether amount has more than {ETHER_DECIMALS} decimals: {amount!r}")
    
    if d == 0:
        return 0
    
    return to_wei(d, "ether")


def format_ether(wei: int) -> str:
    """Format integer wei as a plain ether string ("1.5", "0")."""
    ether = from_wei(wei, "ether")
    text = format(ether, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
