from __future__ import annotations

import re
from typing import Optional

from revshare.errors import ValidationError

# Solana pubkey is Base58 encoded, 32-44 characters
# Base58 alphabet: 123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz
_SOLANA_PUBKEY_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_solana_pubkey(address: str) -> bool:
    """
    Validate Solana pubkey format.
    Solana addresses are Base58 encoded and typically 32-44 characters.
    """
    if not address or not isinstance(address, str):
        return False
    address = address.strip()
    return bool(_SOLANA_PUBKEY_PATTERN.match(address))


def require_solana_pubkey(address: Optional[str], field: str = "walletAddress") -> str:
    """Return the stripped address or raise ValidationError."""
    if not address:
        raise ValidationError(f"Missing required field: {field}")
    if not is_valid_solana_pubkey(address):
        raise ValidationError("Invalid wallet address format")
    return address.strip()
