"""Risk engine — wires chain client, asset book, cache and services from config."""
from __future__ import annotations

import logging
from typing import Any

from ..assets import AssetBook
from ..chains.solana.client import SolanaClient
from ..config import AppConfig
from ..errors import UnknownAssetError
from ..interfaces import AccountFetcher, PriceOracle
from ..models import BorrowQuote, PoolStats, Position
from ..oracles import OnchainPriceOracle, PythOracle
from ..risk import ThresholdBook, borrow_quote, max_safe_borrow_amount
from .cache import ServerCache
from .leaderboard import LeaderboardService
from .market import MarketService

logger = logging.getLogger(__name__)

# Price oracle factories keyed by provider name; "static" keeps config prices.
_PRICE_ORACLE_FACTORIES: dict[str, Any] = {
    "static": lambda cfg, fetcher, book: None,
    "pyth": lambda cfg, fetcher, book: PythOracle(cfg.price_oracle.pyth, book.pyth_feeds()),
    "onchain": lambda cfg, fetcher, book: OnchainPriceOracle(
        fetcher, cfg.market.program_id, cfg.market.address
    ),
}


class RiskEngine:
    """One market's leaderboard, obligation lookup and borrow quotes."""

    def __init__(
        self,
        config: AppConfig,
        fetcher: AccountFetcher | None = None,
        cache: ServerCache | None = None,
    ) -> None:
        self._config = config
        self.fetcher: AccountFetcher = fetcher or SolanaClient(config.solana)
        self.cache = cache or ServerCache()

        asset_book = AssetBook.from_config(config.assets)
        self.market = MarketService(
            self.fetcher,
            asset_book,
            config.market.address,
            config.market.program_id,
            config.risk.default_threshold,
        )
        self.oracle: PriceOracle | None = _PRICE_ORACLE_FACTORIES[
            config.price_oracle.provider
        ](config, self.fetcher, asset_book)
        self.leaderboard = LeaderboardService(
            self.fetcher,
            asset_book,
            self.cache,
            config.market.address,
            config.market.program_id,
            config.leaderboard,
            ThresholdBook.static(asset_book, config.risk.default_threshold),
        )

    @property
    def asset_book(self) -> AssetBook:
        return self.leaderboard.asset_book

    @property
    def threshold_book(self) -> ThresholdBook:
        return self.leaderboard.threshold_book

    async def start(self) -> None:
        """Load on-chain thresholds and initial prices."""
        threshold_book = await self.market.load_threshold_book()
        await self.refresh_prices()
        self.leaderboard.threshold_book = threshold_book
        logger.info(
            "Risk engine ready: market=%s assets=%d registry=%s default_threshold=%.2f oracle=%s",
            self._config.market.address,
            len(self.asset_book),
            threshold_book.has_registry,
            threshold_book.default,
            self._config.price_oracle.provider,
        )

    async def refresh_prices(self) -> None:
        self.leaderboard.asset_book = await self.market.refresh_prices(self.oracle)

    async def pool_stats(self) -> list[PoolStats]:
        return await self.market.pool_stats()

    # ------------------------------------------------------------------
    # Borrow quotes
    # ------------------------------------------------------------------

    def _positions(self, holdings: list[tuple[str, float]]) -> list[Position]:
        positions = []
        for mint, amount in holdings:
            asset = self.asset_book.get(mint)
            if asset is None:
                raise UnknownAssetError(f"Unknown asset mint {mint}")
            positions.append(Position(amount=amount, asset=asset))
        return positions

    def quote(
        self,
        deposits: list[tuple[str, float]],
        borrows: list[tuple[str, float]],
        candidate_mint: str,
        target_health: float | None = None,
    ) -> tuple[BorrowQuote, float]:
        """Return the borrow quote and the amount borrowable at ``target_health``.

        ``target_health`` defaults to the configured safe health.
        """
        candidate = self.asset_book.get(candidate_mint)
        if candidate is None:
            raise UnknownAssetError(f"Unknown asset mint {candidate_mint}")
        dep_positions = self._positions(deposits)
        bor_positions = self._positions(borrows)

        risk = self._config.risk
        result = borrow_quote(
            dep_positions,
            bor_positions,
            candidate,
            self.threshold_book,
            safe_health=risk.safe_health,
            max_health=risk.max_health,
        )
        target = risk.safe_health if target_health is None else target_health
        max_safe = max_safe_borrow_amount(
            dep_positions, bor_positions, candidate, target, self.threshold_book
        )
        return result, max_safe
