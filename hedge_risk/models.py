"""Data models — all frozen (immutable)."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

# Fixed-point one in Q60 (60 fractional bits).
Q60_ONE = 1 << 60


# ---------------------------------------------------------------------------
# Assets and positions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AssetRef:
    """One asset as seen by the solver: identity, USD price and precision."""

    mint: str
    symbol: str = ""
    price: float = 0.0
    decimals: int = 6
    cmc_id: int | None = None
    registry_index: int | None = None


@dataclass(frozen=True)
class Position:
    """A UI-unit holding of one asset."""

    amount: float
    asset: AssetRef


# ---------------------------------------------------------------------------
# On-chain records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObligationPosition:
    mint: str
    deposit_shares_q60: int = 0
    borrow_shares_q60: int = 0

    @property
    def is_empty(self) -> bool:
        return self.deposit_shares_q60 == 0 and self.borrow_shares_q60 == 0


@dataclass(frozen=True)
class ObligationRecord:
    """One borrower's deposit/borrow share balances in a market."""

    address: str
    market: str
    owner: str
    positions: tuple[ObligationPosition, ...] = ()
    bump: int = 0


@dataclass(frozen=True)
class PoolFactors:
    """Share → atomic amount multipliers at the current accrual point."""

    deposit_factor_q60: int
    borrow_factor_q60: int


@dataclass(frozen=True)
class RateModel:
    kink_util_bps: int = 0
    base_borrow_apy_bps: int = 0
    slope1_bps: int = 0
    slope2_bps: int = 0
    reserve_factor_bps: int = 0
    max_borrow_apy_bps: int = 0


@dataclass(frozen=True)
class PoolRecord:
    address: str
    market: str
    mint: str
    vault: str
    borrow_factor_q60: int
    deposit_factor_q60: int
    total_borrow_shares_q60: int
    total_deposit_shares_q60: int
    last_timestamp: int
    rate: RateModel
    bump: int = 0
    vault_auth_bump: int = 0

    @property
    def factors(self) -> PoolFactors:
        return PoolFactors(
            deposit_factor_q60=self.deposit_factor_q60,
            borrow_factor_q60=self.borrow_factor_q60,
        )


@dataclass(frozen=True)
class RiskPair:
    ltv_bps: int
    liq_threshold_bps: int
    liq_bonus_bps: int


@dataclass(frozen=True)
class RiskRegistryRecord:
    """Pairwise risk parameters, a dense ``dim x dim`` row-major matrix."""

    market: str
    bump: int
    dim: int
    pairs: tuple[RiskPair, ...] = ()


@dataclass(frozen=True)
class AssetMeta:
    mint: str
    pyth_price: str
    pyth_feed_id: str
    decimals: int
    enabled_as_collateral: bool
    index: int


@dataclass(frozen=True)
class AssetRegistryRecord:
    market: str
    bump: int
    count: int
    assets: tuple[AssetMeta, ...] = ()


@dataclass(frozen=True)
class PriceEntry:
    asset_index: int
    price_q60: int


@dataclass(frozen=True)
class PriceCacheRecord:
    market: str
    bump: int
    last_slot: int
    prices: tuple[PriceEntry, ...] = ()


@dataclass(frozen=True)
class MarketRecord:
    authority: str
    max_assets: int
    max_positions: int
    default_ltv_bps: int
    default_liq_threshold_bps: int
    default_liq_bonus_bps: int
    price_mode: int
    version: int
    bump: int
    price_cache_bump: int
    paused: bool
    pyth_max_age_secs: int


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObligationValuation:
    deposits_usd: float = 0.0
    borrows_usd: float = 0.0
    net_usd: float = 0.0
    valued_positions: int = 0
    skipped_positions: int = 0

    @property
    def is_unvaluable(self) -> bool:
        """Every non-empty position referenced an asset without pool factors."""
        return self.valued_positions == 0 and self.skipped_positions > 0


@dataclass(frozen=True)
class LeaderboardEntry:
    account_id: str
    owner_id: str
    portfolio_value_usd: float
    total_deposits_usd: float
    total_borrows_usd: float


@dataclass(frozen=True)
class LeaderboardPage:
    cached: bool
    leaderboard: tuple[LeaderboardEntry, ...]
    obligation_count: int
    page: int
    page_size: int
    scanned_at: int
    total_entries: int
    total_pages: int


@dataclass(frozen=True)
class ObligationSummary:
    address: str
    owner: str
    market: str
    deposits: tuple[Position, ...]
    borrows: tuple[Position, ...]
    valuation: ObligationValuation
    health_score: float


@dataclass(frozen=True)
class BorrowQuote:
    safe_amount: float
    max_amount: float
    health_score: float


@dataclass(frozen=True)
class PoolStats:
    """Market statistics of one pool; amounts in UI units, rates in bps."""

    address: str
    mint: str
    symbol: str
    price: float
    total_deposits: float
    total_borrows: float
    utilization_rate: float  # percent, may exceed 100
    borrow_apy_bps: int
    deposit_apy_bps: int
    last_timestamp: int

    @property
    def available_liquidity(self) -> float:
        return max(0.0, self.total_deposits - self.total_borrows)

    @property
    def total_deposits_usd(self) -> float:
        value = self.total_deposits * self.price
        return value if math.isfinite(value) else 0.0

    @property
    def total_borrows_usd(self) -> float:
        value = self.total_borrows * self.price
        return value if math.isfinite(value) else 0.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value with its write time and expiry, both epoch ms."""

    data: T
    scanned_at: int
    expires_at: int
