"""Market-level resources: risk registries, asset prices and pool statistics."""
from __future__ import annotations

import logging

from ..addresses import asset_registry_address, normalize_address, risk_registry_address
from ..assets import AssetBook
from ..interfaces import AccountFetcher, PriceOracle
from ..models import PoolStats
from ..protocols.zodial.layout import decode_asset_registry, decode_risk_registry
from ..risk import DEFAULT_THRESHOLD, ThresholdBook
from .pools import fetch_pools, pool_stats

logger = logging.getLogger(__name__)


class MarketService:
    """Load the market's risk registries and keep the asset book priced."""

    def __init__(
        self,
        fetcher: AccountFetcher,
        asset_book: AssetBook,
        market_address: str,
        program_id: str,
        default_threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self.fetcher = fetcher
        self.asset_book = asset_book
        self.market_address = normalize_address(market_address)
        self.program_id = normalize_address(program_id)
        self.default_threshold = default_threshold

    async def load_threshold_book(self) -> ThresholdBook:
        """Build a threshold book from the on-chain registries.

        Any failure falls back to the static tables. On success the asset
        book's registry indices are replaced by the on-chain ones.
        """
        addresses = [
            asset_registry_address(self.program_id, self.market_address),
            risk_registry_address(self.program_id, self.market_address),
        ]
        try:
            asset_data, risk_data = await self.fetcher.get_multiple_accounts(addresses)
            if asset_data is None or risk_data is None:
                raise LookupError("asset or risk registry account not found")
            asset_registry = decode_asset_registry(asset_data)
            risk_registry = decode_risk_registry(risk_data)
        except Exception as e:
            logger.warning("Risk registry unavailable, using static thresholds: %s", e)
            return ThresholdBook.static(self.asset_book, self.default_threshold)

        self.asset_book = self.asset_book.with_registry(asset_registry)
        logger.info(
            "Loaded risk registry: dim=%d, %d pairs, %d registered assets",
            risk_registry.dim,
            len(risk_registry.pairs),
            len(asset_registry.assets),
        )
        return ThresholdBook(self.asset_book, risk_registry, self.default_threshold)

    async def refresh_prices(self, oracle: PriceOracle | None) -> AssetBook:
        """Reprice the asset book from ``oracle``; static prices stay otherwise."""
        if oracle is None:
            return self.asset_book
        prices = await oracle.fetch_prices(self.asset_book.mints())
        if prices:
            self.asset_book = self.asset_book.with_prices(prices)
        else:
            logger.warning("Price oracle returned no prices, keeping static prices")
        return self.asset_book

    async def pool_stats(self) -> list[PoolStats]:
        """Totals, utilization and current APYs of every configured asset's pool."""
        mints = self.asset_book.mints()
        pools = await fetch_pools(self.fetcher, self.program_id, self.market_address, mints)
        stats = [pool_stats(pools[mint], self.asset_book) for mint in mints if mint in pools]
        logger.info("Computed stats for %d of %d pools", len(stats), len(mints))
        return stats
