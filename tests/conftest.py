"""Shared test fixtures and sample data."""
from __future__ import annotations

import struct
import textwrap
from pathlib import Path

import pytest

from hedge_risk.addresses import address_bytes, normalize_address
from hedge_risk.assets import AssetBook
from hedge_risk.chains.solana.client import MemcmpFilter
from hedge_risk.config import (
    AppConfig,
    AssetConfig,
    ChainConfig,
    LeaderboardConfig,
    MarketConfig,
    PriceOracleConfig,
    RiskConfig,
)
from hedge_risk.models import Q60_ONE
from hedge_risk.protocols.zodial.layout import (
    ASSET_REGISTRY_DISCRIMINATOR,
    MARKET_DISCRIMINATOR,
    OBLIGATION_DISCRIMINATOR,
    POOL_DISCRIMINATOR,
    PRICE_CACHE_DISCRIMINATOR,
    RISK_REGISTRY_DISCRIMINATOR,
)
from hedge_risk.services.cache import ServerCache

PROGRAM_ID = "5E1ikr753b8RQZdtohZAY8wmpjn2hu9dWzrN5xEasmtu"
MARKET = "SysvarC1ock11111111111111111111111111111111"

SOL = "So11111111111111111111111111111111111111112"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
JITOSOL = "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn"


def pubkey(n: int) -> str:
    """A deterministic, valid address distinct per ``n``."""
    return normalize_address(bytes([n]) * 32)


# ---------------------------------------------------------------------------
# Account byte builders
# ---------------------------------------------------------------------------


def _u128(value: int) -> bytes:
    return value.to_bytes(16, "little")


class Accounts:
    """Build Anchor-encoded program accounts."""

    @staticmethod
    def obligation(
        owner: str,
        positions: list[tuple[str, int, int]],
        market: str = MARKET,
        bump: int = 254,
    ) -> bytes:
        body = bytearray(OBLIGATION_DISCRIMINATOR)
        body += address_bytes(market) + address_bytes(owner)
        body += struct.pack("<I", len(positions))
        for mint, deposit, borrow in positions:
            body += address_bytes(mint) + _u128(deposit) + _u128(borrow)
        body += struct.pack("<B", bump)
        return bytes(body)

    @staticmethod
    def pool(
        mint: str,
        deposit_factor: int = Q60_ONE,
        borrow_factor: int = Q60_ONE,
        market: str = MARKET,
        total_deposit_shares: int = 7 * Q60_ONE,
        total_borrow_shares: int = 5 * Q60_ONE,
        rate: tuple[int, int, int, int, int, int] = (8000, 100, 400, 6000, 1000, 30000),
    ) -> bytes:
        body = bytearray(POOL_DISCRIMINATOR)
        body += address_bytes(market) + address_bytes(mint) + address_bytes(pubkey(99))
        body += _u128(borrow_factor) + _u128(deposit_factor)
        body += _u128(total_borrow_shares) + _u128(total_deposit_shares)
        body += struct.pack("<q", 1_700_000_000)
        body += struct.pack("<6H", *rate)
        body += struct.pack("<BB", 253, 252)
        return bytes(body)

    @staticmethod
    def market(authority: str | None = None, paused: bool = False) -> bytes:
        body = bytearray(MARKET_DISCRIMINATOR)
        body += address_bytes(authority or pubkey(98))
        body += struct.pack("<5H", 16, 8, 7500, 8500, 500)
        body += struct.pack("<4B", 1, 2, 255, 254)
        body += struct.pack("<?Q", paused, 60)
        return bytes(body)

    @staticmethod
    def risk_registry(
        dim: int, pairs: list[tuple[int, int, int]], market: str = MARKET
    ) -> bytes:
        body = bytearray(RISK_REGISTRY_DISCRIMINATOR)
        body += address_bytes(market) + struct.pack("<BH", 250, dim)
        body += struct.pack("<I", len(pairs))
        for ltv, lt, bonus in pairs:
            body += struct.pack("<3H", ltv, lt, bonus)
        return bytes(body)

    @staticmethod
    def asset_registry(assets: list[tuple[str, int]], market: str = MARKET) -> bytes:
        body = bytearray(ASSET_REGISTRY_DISCRIMINATOR)
        body += address_bytes(market) + struct.pack("<BH", 249, len(assets))
        body += struct.pack("<I", len(assets))
        for mint, index in assets:
            body += address_bytes(mint) + address_bytes(pubkey(97))
            body += b"0x" + b"ab" * 32
            body += struct.pack("<B?H", 6, True, index)
        return bytes(body)

    @staticmethod
    def price_cache(
        prices: list[tuple[int, int]], market: str = MARKET, last_slot: int = 123
    ) -> bytes:
        body = bytearray(PRICE_CACHE_DISCRIMINATOR)
        body += address_bytes(market) + struct.pack("<BQ", 248, last_slot)
        body += struct.pack("<I", len(prices))
        for index, price_q60 in prices:
            body += struct.pack("<H", index) + _u128(price_q60)
        return bytes(body)


@pytest.fixture()
def accounts() -> type[Accounts]:
    return Accounts


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Settable epoch-ms clock."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


class FakeFetcher:
    """In-memory account store implementing the account fetcher protocol."""

    def __init__(self, accounts: dict[str, bytes] | None = None) -> None:
        self.accounts: dict[str, bytes] = dict(accounts or {})
        self.multiple_calls: list[list[str]] = []
        self.account_calls: list[str] = []
        self.scan_calls: list[list[MemcmpFilter]] = []

    def _matches(self, data: bytes, filters: list[MemcmpFilter]) -> bool:
        return all(data[f.offset : f.offset + len(f.data)] == f.data for f in filters)

    async def get_multiple_accounts(
        self, addresses: list[str], batch_size: int = 100
    ) -> list[bytes | None]:
        self.multiple_calls.append(list(addresses))
        return [self.accounts.get(a) for a in addresses]

    async def get_account(self, address: str) -> bytes | None:
        self.account_calls.append(address)
        return self.accounts.get(address)

    async def get_program_account_addresses(
        self,
        program_id: str,
        filters: list[MemcmpFilter],
        data_slice: tuple[int, int] | None = (0, 0),
    ) -> list[str]:
        self.scan_calls.append(list(filters))
        return [a for a, d in self.accounts.items() if self._matches(d, filters)]

    async def get_program_accounts(
        self, program_id: str, filters: list[MemcmpFilter]
    ) -> list[tuple[str, bytes]]:
        self.scan_calls.append(list(filters))
        return [(a, d) for a, d in self.accounts.items() if self._matches(d, filters)]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cache(clock: FakeClock) -> ServerCache:
    return ServerCache(clock=clock)


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_assets() -> tuple[AssetConfig, ...]:
    return (
        AssetConfig(
            mint=SOL,
            symbol="SOL",
            decimals=9,
            price=150.0,
            cmc_id=5426,
            registry_index=0,
            pyth_feed="0xsolfeed",
            threshold_matrix={"3408": 85.0, "22533": 95.0},
        ),
        AssetConfig(
            mint=USDC,
            symbol="USDC",
            decimals=6,
            price=1.0,
            cmc_id=3408,
            registry_index=1,
            pyth_feed="usdcfeed",
            threshold_matrix={"5426": 0.88},
        ),
        AssetConfig(
            mint=JITOSOL,
            symbol="JitoSOL",
            decimals=9,
            price=180.0,
            cmc_id=22533,
            registry_index=2,
        ),
    )


@pytest.fixture()
def asset_book(sample_assets: tuple[AssetConfig, ...]) -> AssetBook:
    return AssetBook.from_config(sample_assets)


@pytest.fixture()
def sample_app_config(sample_assets: tuple[AssetConfig, ...]) -> AppConfig:
    return AppConfig(
        solana=ChainConfig(rpc_endpoints=("https://rpc.example.com",), rpc_timeout=5),
        market=MarketConfig(address=MARKET, program_id=PROGRAM_ID),
        assets=sample_assets,
        risk=RiskConfig(),
        leaderboard=LeaderboardConfig(page_size=2, max_page_size=10),
        price_oracle=PriceOracleConfig(provider="static"),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    solana:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    market:
      address: "{MARKET}"
    assets:
      {USDC}:
        symbol: USDC
        decimals: 6
        price: 1.0
        cmc_id: 3408
        threshold_matrix:
          "5426": 85
      {SOL}:
        symbol: SOL
        decimals: 9
        price: 150
        cmc_id: 5426
        pyth_feed: "abc"
    risk:
      default_threshold: 0.9
    leaderboard:
      page_size: 50
    price_oracle:
      provider: pyth
      pyth:
        hermes_url: "https://hermes.example.com"
    server:
      port: 9000
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
