"""Price oracle protocol — price feed abstraction."""
from typing import Protocol


class PriceOracle(Protocol):
    """Abstract interface for fetching asset prices keyed by mint."""

    async def fetch_prices(self, mints: list[str] | None = None) -> dict[str, float]: ...
