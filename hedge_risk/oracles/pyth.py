"""Pyth Network price oracle service."""
import logging
import math
import ssl

import aiohttp
import certifi

from ..config import PythConfig

logger = logging.getLogger(__name__)


def _normalize_feed_id(feed_id: str) -> str:
    return feed_id.lower().removeprefix("0x")


class PythOracle:
    """Fetch USD prices from Pyth Hermes, keyed by asset mint."""

    def __init__(self, config: PythConfig, feeds: dict[str, str]) -> None:
        self.hermes_url = config.hermes_url
        # mint -> Pyth feed id
        self.price_feeds = dict(feeds)

    async def fetch_prices(self, mints: list[str] | None = None) -> dict[str, float]:
        """Fetch current prices from Pyth Network.

        Args:
            mints: Optional list of mints to fetch. If None, fetches all
                   configured feeds.

        Errors are logged and yield an empty (or partial) result; callers
        fall back to their existing prices.
        """
        prices: dict[str, float] = {}

        feeds = self.price_feeds
        if mints is not None:
            feeds = {k: v for k, v in self.price_feeds.items() if k in mints}

        feed_ids = sorted({_normalize_feed_id(v) for v in feeds.values()})
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    id_to_mints: dict[str, list[str]] = {}
                    for mint, feed_id in feeds.items():
                        id_to_mints.setdefault(_normalize_feed_id(feed_id), []).append(mint)

                    for item in parsed:
                        feed_id = _normalize_feed_id(item.get("id", ""))
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))

                        price = price_raw * (10**expo)
                        if not math.isfinite(price) or price <= 0:
                            logger.warning("Ignoring non-positive Pyth price for feed %s", feed_id)
                            continue

                        for mint in id_to_mints.get(feed_id, []):
                            prices[mint] = price

                    logger.info("Fetched %d prices from Pyth Network", len(prices))
                    for mint, price in sorted(prices.items()):
                        logger.debug("  %s: $%.6f", mint, price)

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
