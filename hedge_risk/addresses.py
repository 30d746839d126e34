"""Canonical account identifiers and PDA derivation.

Every address that enters the core goes through :func:`normalize_address`
first; past that boundary addresses are plain base58 strings.
"""
from __future__ import annotations

import hashlib
from typing import Any

from solders.pubkey import Pubkey

SEED_POOL = b"pool"
SEED_RISK_REG = b"risk-reg"
SEED_ASSET_REG = b"asset-reg"
SEED_PRICE_CACHE = b"price-cache"


def _to_pubkey(value: Any) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 32:
            raise ValueError(f"Expected 32 address bytes, got {len(value)}")
        return Pubkey.from_bytes(bytes(value))
    if value is None:
        raise ValueError("Address is missing")
    text = str(value).strip()
    if not text:
        raise ValueError("Address is empty")
    try:
        return Pubkey.from_string(text)
    except Exception as e:
        raise ValueError(f"Invalid address {text!r}: {e}") from e


def normalize_address(value: Any) -> str:
    """Convert any accepted address representation to a base58 string.

    Accepts base58 strings, 32 raw bytes, ``solders`` ``Pubkey`` objects, or
    anything whose ``str()`` is a base58 key. Raises ``ValueError`` otherwise.
    """
    return str(_to_pubkey(value))


def address_bytes(address: str) -> bytes:
    return bytes(_to_pubkey(address))


def account_discriminator(account_name: str) -> bytes:
    """Anchor account discriminator: ``sha256("account:<Name>")[:8]``."""
    return hashlib.sha256(f"account:{account_name}".encode()).digest()[:8]


# ---------------------------------------------------------------------------
# PDAs
# ---------------------------------------------------------------------------


def _find_pda(seeds: list[bytes], program_id: str) -> str:
    pda, _ = Pubkey.find_program_address(seeds, _to_pubkey(program_id))
    return str(pda)


def pool_address(program_id: str, market: str, mint: str) -> str:
    return _find_pda([SEED_POOL, address_bytes(market), address_bytes(mint)], program_id)


def risk_registry_address(program_id: str, market: str) -> str:
    return _find_pda([SEED_RISK_REG, address_bytes(market)], program_id)


def asset_registry_address(program_id: str, market: str) -> str:
    return _find_pda([SEED_ASSET_REG, address_bytes(market)], program_id)


def price_cache_address(program_id: str, market: str) -> str:
    return _find_pda([SEED_PRICE_CACHE, address_bytes(market)], program_id)
