"""Asset book — asset identity, prices, and static threshold tables.

Two identifier spaces exist for an asset besides its mint: the on-chain
registry index (used by the risk registry matrix) and the secondary
``cmc_id`` (used by the static threshold tables). Callers always identify
assets by mint; :meth:`AssetBook.registry_index_of` and
:meth:`AssetBook.cmc_id_of` are the only translations into the other spaces.
"""
from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Iterable

from .config import AssetConfig
from .models import AssetRef, AssetRegistryRecord

logger = logging.getLogger(__name__)


class AssetBook:
    """Immutable lookup of configured assets keyed by mint."""

    def __init__(
        self,
        assets: Iterable[AssetRef],
        threshold_tables: dict[str, dict[str, float]] | None = None,
        pyth_feeds: dict[str, str] | None = None,
    ) -> None:
        self._assets: dict[str, AssetRef] = {a.mint: a for a in assets}
        self._threshold_tables = dict(threshold_tables or {})
        self._pyth_feeds = dict(pyth_feeds or {})

    @classmethod
    def from_config(cls, assets: Iterable[AssetConfig]) -> AssetBook:
        refs: list[AssetRef] = []
        tables: dict[str, dict[str, float]] = {}
        feeds: dict[str, str] = {}
        for cfg in assets:
            refs.append(
                AssetRef(
                    mint=cfg.mint,
                    symbol=cfg.symbol or cfg.mint[:8],
                    price=cfg.price,
                    decimals=cfg.decimals,
                    cmc_id=cfg.cmc_id,
                    registry_index=cfg.registry_index,
                )
            )
            if cfg.threshold_matrix:
                tables[cfg.mint] = dict(cfg.threshold_matrix)
            if cfg.pyth_feed:
                feeds[cfg.mint] = cfg.pyth_feed
        return cls(refs, tables, feeds)

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, mint: object) -> bool:
        return mint in self._assets

    def get(self, mint: str) -> AssetRef | None:
        return self._assets.get(mint)

    def mints(self) -> list[str]:
        return list(self._assets)

    def prices(self) -> dict[str, float]:
        return {mint: a.price for mint, a in self._assets.items()}

    def decimals(self) -> dict[str, int]:
        return {mint: a.decimals for mint, a in self._assets.items()}

    def symbol(self, mint: str) -> str:
        asset = self._assets.get(mint)
        return asset.symbol if asset else mint[:8]

    def pyth_feeds(self) -> dict[str, str]:
        return dict(self._pyth_feeds)

    # ------------------------------------------------------------------
    # ID-space translation
    # ------------------------------------------------------------------

    def registry_index_of(self, mint: str) -> int | None:
        asset = self._assets.get(mint)
        return asset.registry_index if asset else None

    def cmc_id_of(self, mint: str) -> int | None:
        asset = self._assets.get(mint)
        return asset.cmc_id if asset else None

    def static_threshold(self, deposit_mint: str, borrow_mint: str) -> float | None:
        """Raw static threshold for a pair, or ``None`` when not configured."""
        table = self._threshold_tables.get(deposit_mint)
        counter_id = self.cmc_id_of(borrow_mint)
        if not table or counter_id is None:
            return None
        return table.get(str(counter_id))

    # ------------------------------------------------------------------
    # Derived books
    # ------------------------------------------------------------------

    def with_prices(self, prices: dict[str, float]) -> AssetBook:
        """Return a copy repriced from ``prices``; invalid prices are ignored."""
        assets = []
        for mint, asset in self._assets.items():
            price = prices.get(mint)
            if price is None or not math.isfinite(price) or price <= 0:
                assets.append(asset)
            else:
                assets.append(replace(asset, price=float(price)))
        return AssetBook(assets, self._threshold_tables, self._pyth_feeds)

    def with_registry(self, registry: AssetRegistryRecord) -> AssetBook:
        """Return a copy whose registry indices come from the on-chain registry.

        Mints the registry does not list lose their configured index, since
        that index may belong to another asset on chain.
        """
        indices = {meta.mint: meta.index for meta in registry.assets}
        assets = []
        for mint, asset in self._assets.items():
            if mint in indices:
                assets.append(replace(asset, registry_index=indices[mint]))
            else:
                if asset.registry_index is not None:
                    logger.warning(
                        "Asset %s is not in the on-chain registry, dropping configured index %d",
                        mint,
                        asset.registry_index,
                    )
                assets.append(replace(asset, registry_index=None))
        return AssetBook(assets, self._threshold_tables, self._pyth_feeds)
