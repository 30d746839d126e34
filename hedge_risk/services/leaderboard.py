"""Leaderboard aggregator — scan, value, rank and paginate obligations."""
from __future__ import annotations

import logging
import math

from ..addresses import address_bytes, normalize_address
from ..assets import AssetBook
from ..chains.solana.client import MemcmpFilter
from ..config import LeaderboardConfig
from ..errors import AccountDecodeError, MarketResolutionError
from ..interfaces import AccountFetcher
from ..models import (
    LeaderboardEntry,
    LeaderboardPage,
    ObligationRecord,
    ObligationSummary,
    PoolFactors,
    Q60_ONE,
)
from ..protocols.zodial.layout import (
    OBLIGATION_DISCRIMINATOR,
    OBLIGATION_MARKET_OFFSET,
    OBLIGATION_OWNER_OFFSET,
    decode_market,
    decode_obligation,
)
from ..risk import ThresholdBook, health_score
from .cache import CacheKeys, ServerCache
from .pools import fetch_pools
from .valuation import obligation_positions, value_obligation

logger = logging.getLogger(__name__)


def rank_entries(entries: list[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Sort by portfolio value, highest first; ties keep scan order."""
    return sorted(entries, key=lambda e: e.portfolio_value_usd, reverse=True)


def paginate(
    entries: list[LeaderboardEntry], page: int, page_size: int
) -> tuple[list[LeaderboardEntry], int]:
    """Return the requested page and the total page count."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    offset = (page - 1) * page_size
    total_pages = math.ceil(len(entries) / page_size)
    return entries[offset : offset + page_size], total_pages


class LeaderboardService:
    """Rank every obligation of one market by net portfolio value."""

    def __init__(
        self,
        fetcher: AccountFetcher,
        asset_book: AssetBook,
        cache: ServerCache,
        market_address: str,
        program_id: str,
        settings: LeaderboardConfig | None = None,
        threshold_book: ThresholdBook | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.asset_book = asset_book
        self.cache = cache
        self.market_address = normalize_address(market_address)
        self.program_id = normalize_address(program_id)
        self.settings = settings or LeaderboardConfig()
        self.threshold_book = threshold_book or ThresholdBook.static(asset_book)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def verify_market(self) -> None:
        """Raise :class:`MarketResolutionError` unless the market account exists."""
        data = await self.fetcher.get_account(self.market_address)
        if data is None:
            raise MarketResolutionError(f"Market account {self.market_address} not found")
        try:
            decode_market(data)
        except AccountDecodeError as e:
            raise MarketResolutionError(
                f"Account {self.market_address} is not a market: {e}"
            ) from e

    async def fetch_pool_factors(self) -> dict[str, PoolFactors]:
        """Fetch and decode the pool of every known asset mint."""
        mints = self.asset_book.mints()
        pools = await fetch_pools(
            self.fetcher,
            self.program_id,
            self.market_address,
            mints,
            batch_size=self.settings.batch_size,
        )

        factors: dict[str, PoolFactors] = {}
        for mint, pool in pools.items():
            if pool.deposit_factor_q60 < Q60_ONE or pool.borrow_factor_q60 < Q60_ONE:
                logger.warning("Pool %s has a factor below one", pool.address)
            factors[mint] = pool.factors

        logger.info("Fetched pool factors for %d of %d assets", len(factors), len(mints))
        return factors

    async def pool_factors(self, force_refresh: bool = False) -> tuple[dict[str, PoolFactors], bool]:
        """Return pool factors and whether the market was verified on the way."""
        if not force_refresh:
            entry = self.cache.get(CacheKeys.POOL_FACTORS)
            if entry is not None:
                logger.debug("Using cached pool factors: %d pools", len(entry.data))
                return entry.data, False

        await self.verify_market()
        factors = await self.fetch_pool_factors()
        self.cache.set(
            CacheKeys.POOL_FACTORS, factors, self.settings.pool_factors_ttl_seconds
        )
        return factors, True

    def _obligation_filters(self, owner: str | None = None) -> list[MemcmpFilter]:
        filters = [
            MemcmpFilter(0, OBLIGATION_DISCRIMINATOR),
            MemcmpFilter(OBLIGATION_MARKET_OFFSET, address_bytes(self.market_address)),
        ]
        if owner is not None:
            filters.append(MemcmpFilter(OBLIGATION_OWNER_OFFSET, address_bytes(owner)))
        return filters

    async def scan_obligation_addresses(self) -> list[str]:
        addresses = await self.fetcher.get_program_account_addresses(
            self.program_id, self._obligation_filters(), data_slice=(0, 0)
        )
        logger.info("Scanned %d obligation accounts", len(addresses))
        return addresses

    def _decode_obligations(
        self, addresses: list[str], accounts: list[bytes | None]
    ) -> list[ObligationRecord]:
        records: list[ObligationRecord] = []
        for address, data in zip(addresses, accounts):
            if data is None:
                logger.warning("Obligation %s no longer exists", address)
                continue
            try:
                records.append(decode_obligation(address, data))
            except AccountDecodeError as e:
                logger.error("Failed to decode obligation %s: %s", address, e)
        return records

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_entries(
        self, records: list[ObligationRecord], pool_factors: dict[str, PoolFactors]
    ) -> list[LeaderboardEntry]:
        """Value ``records``, dropping those that cannot be valued, and rank."""
        prices = self.asset_book.prices()
        decimals = self.asset_book.decimals()

        entries: list[LeaderboardEntry] = []
        for record in records:
            valuation = value_obligation(record, pool_factors, prices, decimals)
            if valuation.is_unvaluable:
                logger.warning(
                    "Dropping obligation %s: no position could be valued", record.address
                )
                continue
            entries.append(
                LeaderboardEntry(
                    account_id=record.address,
                    owner_id=record.owner,
                    portfolio_value_usd=valuation.net_usd,
                    total_deposits_usd=valuation.deposits_usd,
                    total_borrows_usd=valuation.borrows_usd,
                )
            )
        return rank_entries(entries)

    async def get_leaderboard(
        self,
        page: int = 1,
        page_size: int | None = None,
        force_refresh: bool = False,
    ) -> LeaderboardPage:
        if page_size is None:
            page_size = self.settings.page_size
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        page_size = min(page_size, self.settings.max_page_size)

        pool_factors, market_verified = await self.pool_factors(force_refresh)

        cached_pdas = None
        if not force_refresh:
            cached_pdas = self.cache.get(CacheKeys.OBLIGATION_PDAS)

        if cached_pdas is not None and cached_pdas.data:
            logger.info("Using cached obligation list: %d accounts", len(cached_pdas.data))
            addresses = list(cached_pdas.data)
            scanned_at = cached_pdas.scanned_at
            cached = True
        else:
            if not market_verified:
                await self.verify_market()
            addresses = await self.scan_obligation_addresses()
            entry = self.cache.set(
                CacheKeys.OBLIGATION_PDAS,
                addresses,
                self.settings.obligation_pdas_ttl_seconds,
            )
            scanned_at = entry.scanned_at
            cached = False

        accounts = await self.fetcher.get_multiple_accounts(
            addresses, batch_size=self.settings.batch_size
        )
        records = self._decode_obligations(addresses, accounts)
        ranked = self.build_entries(records, pool_factors)
        rows, total_pages = paginate(ranked, page, page_size)

        return LeaderboardPage(
            cached=cached,
            leaderboard=tuple(rows),
            obligation_count=len(ranked),
            page=page,
            page_size=page_size,
            scanned_at=scanned_at,
            total_entries=len(ranked),
            total_pages=total_pages,
        )

    async def list_obligations(self, owner: str | None = None) -> list[ObligationSummary]:
        """Every obligation in the market, optionally for one owner, valued."""
        if owner is not None:
            owner = normalize_address(owner)

        pool_factors, _ = await self.pool_factors()
        accounts = await self.fetcher.get_program_accounts(
            self.program_id, self._obligation_filters(owner)
        )
        logger.info("Found %d obligations (owner=%s)", len(accounts), owner)

        prices = self.asset_book.prices()
        decimals = self.asset_book.decimals()

        summaries: list[ObligationSummary] = []
        for address, data in accounts:
            try:
                record = decode_obligation(address, data)
            except AccountDecodeError as e:
                logger.error("Failed to decode obligation %s: %s", address, e)
                continue

            valuation = value_obligation(record, pool_factors, prices, decimals)
            deposits, borrows = obligation_positions(record, pool_factors, self.asset_book)
            summaries.append(
                ObligationSummary(
                    address=record.address,
                    owner=record.owner,
                    market=record.market,
                    deposits=tuple(deposits),
                    borrows=tuple(borrows),
                    valuation=valuation,
                    health_score=health_score(deposits, borrows, self.threshold_book),
                )
            )
        return summaries
