"""Unit tests for address normalization and PDA derivation."""
from __future__ import annotations

import hashlib

import pytest
from solders.pubkey import Pubkey

from conftest import MARKET, PROGRAM_ID, SOL, USDC
from hedge_risk.addresses import (
    account_discriminator,
    address_bytes,
    asset_registry_address,
    normalize_address,
    pool_address,
    price_cache_address,
    risk_registry_address,
)


class TestNormalizeAddress:
    def test_string_passthrough(self) -> None:
        assert normalize_address(USDC) == USDC

    def test_strips_whitespace(self) -> None:
        assert normalize_address(f"  {USDC}\n") == USDC

    def test_pubkey_object(self) -> None:
        assert normalize_address(Pubkey.from_string(SOL)) == SOL

    def test_raw_bytes(self) -> None:
        assert normalize_address(address_bytes(USDC)) == USDC

    def test_all_representations_agree(self) -> None:
        forms = [USDC, Pubkey.from_string(USDC), address_bytes(USDC), bytearray(address_bytes(USDC))]
        assert {normalize_address(f) for f in forms} == {USDC}

    @pytest.mark.parametrize("bad", ["", None, "not-base58-0OIl", b"\x01" * 31])
    def test_invalid_raises_value_error(self, bad: object) -> None:
        with pytest.raises(ValueError):
            normalize_address(bad)


class TestDiscriminator:
    def test_obligation_discriminator_matches_known_bytes(self) -> None:
        assert account_discriminator("Obligation") == bytes(
            [168, 206, 141, 106, 88, 76, 172, 167]
        )

    def test_is_sha256_prefix(self) -> None:
        assert account_discriminator("Pool") == hashlib.sha256(b"account:Pool").digest()[:8]


class TestPdas:
    def test_pool_address_matches_solders(self) -> None:
        expected, _ = Pubkey.find_program_address(
            [b"pool", address_bytes(MARKET), address_bytes(USDC)],
            Pubkey.from_string(PROGRAM_ID),
        )
        assert pool_address(PROGRAM_ID, MARKET, USDC) == str(expected)

    def test_pool_address_differs_per_mint(self) -> None:
        assert pool_address(PROGRAM_ID, MARKET, USDC) != pool_address(PROGRAM_ID, MARKET, SOL)

    def test_registry_addresses_are_distinct(self) -> None:
        addrs = {
            risk_registry_address(PROGRAM_ID, MARKET),
            asset_registry_address(PROGRAM_ID, MARKET),
            price_cache_address(PROGRAM_ID, MARKET),
        }
        assert len(addrs) == 3
