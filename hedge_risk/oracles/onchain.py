"""Prices from the market's on-chain price cache account."""
from __future__ import annotations

import logging
import math

from ..addresses import asset_registry_address, price_cache_address
from ..interfaces.chain import AccountFetcher
from ..protocols.zodial.layout import (
    decode_asset_registry,
    decode_price_cache,
    q60_to_float,
)

logger = logging.getLogger(__name__)


class OnchainPriceOracle:
    """Read Q60 USD prices written by the program's price updater.

    Prices are keyed on-chain by registry index; the asset registry maps
    them back to mints.
    """

    def __init__(self, fetcher: AccountFetcher, program_id: str, market: str) -> None:
        self.fetcher = fetcher
        self.price_cache = price_cache_address(program_id, market)
        self.asset_registry = asset_registry_address(program_id, market)

    async def fetch_prices(self, mints: list[str] | None = None) -> dict[str, float]:
        prices: dict[str, float] = {}
        try:
            cache_data, registry_data = await self.fetcher.get_multiple_accounts(
                [self.price_cache, self.asset_registry]
            )
            if cache_data is None or registry_data is None:
                logger.warning("Price cache or asset registry account not found")
                return prices
            cache = decode_price_cache(cache_data)
            registry = decode_asset_registry(registry_data)
        except Exception as e:
            logger.error("Error fetching on-chain prices: %s", e)
            return prices

        by_index = {meta.index: meta.mint for meta in registry.assets}
        for entry in cache.prices:
            mint = by_index.get(entry.asset_index)
            if mint is None or (mints is not None and mint not in mints):
                continue
            price = q60_to_float(entry.price_q60)
            if math.isfinite(price) and price > 0:
                prices[mint] = price

        logger.info(
            "Fetched %d prices from on-chain cache (slot %d)", len(prices), cache.last_slot
        )
        return prices
