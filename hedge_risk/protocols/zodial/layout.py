"""Pure decoding functions for Zodial (hedge.wtf) program accounts — no I/O.

Accounts are Anchor-serialized: an 8-byte discriminator followed by the
Borsh encoding of the struct (little-endian integers, ``u32`` length
prefixed vectors, 32-byte public keys).
"""
from __future__ import annotations

import struct

from ...addresses import account_discriminator, normalize_address
from ...errors import AccountDecodeError
from ...models import (
    AssetMeta,
    AssetRegistryRecord,
    MarketRecord,
    ObligationPosition,
    ObligationRecord,
    PoolRecord,
    PriceCacheRecord,
    PriceEntry,
    RateModel,
    RiskPair,
    RiskRegistryRecord,
)

Q60_SHIFT = 60

OBLIGATION_DISCRIMINATOR = account_discriminator("Obligation")
POOL_DISCRIMINATOR = account_discriminator("Pool")
RISK_REGISTRY_DISCRIMINATOR = account_discriminator("RiskRegistry")
ASSET_REGISTRY_DISCRIMINATOR = account_discriminator("AssetRegistry")
PRICE_CACHE_DISCRIMINATOR = account_discriminator("PriceCache")
MARKET_DISCRIMINATOR = account_discriminator("Market")

# Byte offsets used by getProgramAccounts memcmp filters.
OBLIGATION_MARKET_OFFSET = 8
OBLIGATION_OWNER_OFFSET = 40

PYTH_FEED_ID_LEN = 66


class _Reader:
    """Sequential little-endian reader over an account buffer."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self._offset = offset

    def _unpack(self, fmt: str) -> int:
        size = struct.calcsize(fmt)
        if self._offset + size > len(self._data):
            raise AccountDecodeError(
                f"Account data truncated at offset {self._offset} "
                f"(need {size} bytes, have {len(self._data) - self._offset})"
            )
        (value,) = struct.unpack_from(fmt, self._data, self._offset)
        self._offset += size
        return value

    def u8(self) -> int:
        return self._unpack("<B")

    def flag(self) -> bool:
        return self.u8() != 0

    def u16(self) -> int:
        return self._unpack("<H")

    def u32(self) -> int:
        return self._unpack("<I")

    def u64(self) -> int:
        return self._unpack("<Q")

    def i64(self) -> int:
        return self._unpack("<q")

    def u128(self) -> int:
        lo = self.u64()
        hi = self.u64()
        return lo | (hi << 64)

    def raw(self, length: int) -> bytes:
        if self._offset + length > len(self._data):
            raise AccountDecodeError(
                f"Account data truncated at offset {self._offset} "
                f"(need {length} bytes)"
            )
        chunk = self._data[self._offset : self._offset + length]
        self._offset += length
        return chunk

    def pubkey(self) -> str:
        return normalize_address(self.raw(32))


def _open(data: bytes, discriminator: bytes, name: str) -> _Reader:
    if len(data) < 8:
        raise AccountDecodeError(f"{name} account too short ({len(data)} bytes)")
    if data[:8] != discriminator:
        raise AccountDecodeError(f"Account is not a {name} (discriminator mismatch)")
    return _Reader(data, 8)


# ---------------------------------------------------------------------------
# Account decoders
# ---------------------------------------------------------------------------


def decode_obligation(address: str, data: bytes) -> ObligationRecord:
    r = _open(data, OBLIGATION_DISCRIMINATOR, "Obligation")
    market = r.pubkey()
    owner = r.pubkey()
    positions = tuple(
        ObligationPosition(
            mint=r.pubkey(),
            deposit_shares_q60=r.u128(),
            borrow_shares_q60=r.u128(),
        )
        for _ in range(r.u32())
    )
    bump = r.u8()
    return ObligationRecord(
        address=address, market=market, owner=owner, positions=positions, bump=bump
    )


def decode_pool(address: str, data: bytes) -> PoolRecord:
    r = _open(data, POOL_DISCRIMINATOR, "Pool")
    market = r.pubkey()
    mint = r.pubkey()
    vault = r.pubkey()
    borrow_fac = r.u128()
    deposit_fac = r.u128()
    total_borrow = r.u128()
    total_deposit = r.u128()
    last_timestamp = r.i64()
    rate = RateModel(
        kink_util_bps=r.u16(),
        base_borrow_apy_bps=r.u16(),
        slope1_bps=r.u16(),
        slope2_bps=r.u16(),
        reserve_factor_bps=r.u16(),
        max_borrow_apy_bps=r.u16(),
    )
    return PoolRecord(
        address=address,
        market=market,
        mint=mint,
        vault=vault,
        borrow_factor_q60=borrow_fac,
        deposit_factor_q60=deposit_fac,
        total_borrow_shares_q60=total_borrow,
        total_deposit_shares_q60=total_deposit,
        last_timestamp=last_timestamp,
        rate=rate,
        bump=r.u8(),
        vault_auth_bump=r.u8(),
    )


def decode_risk_registry(data: bytes) -> RiskRegistryRecord:
    r = _open(data, RISK_REGISTRY_DISCRIMINATOR, "RiskRegistry")
    market = r.pubkey()
    bump = r.u8()
    dim = r.u16()
    pairs = tuple(
        RiskPair(ltv_bps=r.u16(), liq_threshold_bps=r.u16(), liq_bonus_bps=r.u16())
        for _ in range(r.u32())
    )
    return RiskRegistryRecord(market=market, bump=bump, dim=dim, pairs=pairs)


def _decode_feed_id(raw: bytes) -> str:
    return raw.rstrip(b"\x00").decode("ascii", errors="ignore")


def decode_asset_registry(data: bytes) -> AssetRegistryRecord:
    r = _open(data, ASSET_REGISTRY_DISCRIMINATOR, "AssetRegistry")
    market = r.pubkey()
    bump = r.u8()
    count = r.u16()
    assets = tuple(
        AssetMeta(
            mint=r.pubkey(),
            pyth_price=r.pubkey(),
            pyth_feed_id=_decode_feed_id(r.raw(PYTH_FEED_ID_LEN)),
            decimals=r.u8(),
            enabled_as_collateral=r.flag(),
            index=r.u16(),
        )
        for _ in range(r.u32())
    )
    return AssetRegistryRecord(market=market, bump=bump, count=count, assets=assets)


def decode_price_cache(data: bytes) -> PriceCacheRecord:
    r = _open(data, PRICE_CACHE_DISCRIMINATOR, "PriceCache")
    market = r.pubkey()
    bump = r.u8()
    last_slot = r.u64()
    prices = tuple(
        PriceEntry(asset_index=r.u16(), price_q60=r.u128()) for _ in range(r.u32())
    )
    return PriceCacheRecord(market=market, bump=bump, last_slot=last_slot, prices=prices)


def decode_market(data: bytes) -> MarketRecord:
    r = _open(data, MARKET_DISCRIMINATOR, "Market")
    return MarketRecord(
        authority=r.pubkey(),
        max_assets=r.u16(),
        max_positions=r.u16(),
        default_ltv_bps=r.u16(),
        default_liq_threshold_bps=r.u16(),
        default_liq_bonus_bps=r.u16(),
        price_mode=r.u8(),
        version=r.u8(),
        bump=r.u8(),
        price_cache_bump=r.u8(),
        paused=r.flag(),
        pyth_max_age_secs=r.u64(),
    )


# ---------------------------------------------------------------------------
# Fixed-point helpers
# ---------------------------------------------------------------------------


def q60_to_float(value: int) -> float:
    return value / float(1 << Q60_SHIFT)


def shares_to_amount(shares_q60: int, factor_q60: int, decimals: int) -> float:
    """Convert shares to a UI amount.

    amount = ((shares * factor) >> 60) / 10^decimals
    """
    atomic = (shares_q60 * factor_q60) >> Q60_SHIFT
    return atomic / (10**decimals)
