"""Pairwise liquidation threshold lookup.

Resolution order for ``(deposit, borrow)``:

1. the on-chain risk registry, a dense row-major ``dim x dim`` matrix of
   basis points indexed by registry index;
2. the deposit asset's static threshold table, keyed by the borrow asset's
   ``cmc_id`` (values above 1 are percentages);
3. the default threshold.

Lookups never raise.
"""
from __future__ import annotations

import logging
import math

from ..assets import AssetBook
from ..models import RiskRegistryRecord

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.9
BPS_DENOM = 10_000

SOURCE_REGISTRY = "registry"
SOURCE_STATIC = "static"
SOURCE_DEFAULT = "default"


def bps_to_ratio(bps: int) -> float:
    return bps / BPS_DENOM


def normalize_threshold(raw: float | None) -> float | None:
    """Normalize a static table value: ``93`` and ``0.93`` both give ``0.93``."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value / 100 if value > 1 else value


class ThresholdBook:
    """Liquidation thresholds for every (deposit mint, borrow mint) pair."""

    def __init__(
        self,
        assets: AssetBook,
        risk_registry: RiskRegistryRecord | None = None,
        default: float = DEFAULT_THRESHOLD,
    ) -> None:
        self._assets = assets
        self._registry = risk_registry
        self._default = default

    @classmethod
    def static(cls, assets: AssetBook, default: float = DEFAULT_THRESHOLD) -> ThresholdBook:
        """Fallback-only book, used while the on-chain registry is unavailable."""
        return cls(assets, None, default)

    @property
    def has_registry(self) -> bool:
        return self._registry is not None

    @property
    def default(self) -> float:
        return self._default

    def _registry_threshold(self, deposit_mint: str, borrow_mint: str) -> float | None:
        registry = self._registry
        if registry is None or registry.dim == 0:
            return None

        dep_idx = self._assets.registry_index_of(deposit_mint)
        bor_idx = self._assets.registry_index_of(borrow_mint)
        if dep_idx is None or bor_idx is None:
            return None

        dim = registry.dim
        if dep_idx >= dim or bor_idx >= dim:
            logger.debug(
                "Registry index out of bounds: deposit=%d borrow=%d dim=%d",
                dep_idx, bor_idx, dim,
            )
            return None

        pair_index = dep_idx * dim + bor_idx
        if pair_index >= len(registry.pairs):
            logger.debug(
                "Registry pair index out of bounds: %d >= %d",
                pair_index, len(registry.pairs),
            )
            return None

        bps = registry.pairs[pair_index].liq_threshold_bps
        if bps <= 0:
            return None
        return min(bps_to_ratio(bps), 1.0)

    def _static_threshold(self, deposit_mint: str, borrow_mint: str) -> float | None:
        value = normalize_threshold(self._assets.static_threshold(deposit_mint, borrow_mint))
        if value is None:
            return None
        return min(value, 1.0)

    def lookup(self, deposit_mint: str, borrow_mint: str) -> tuple[float, str]:
        """Return ``(threshold, source)`` for a pair."""
        value = self._registry_threshold(deposit_mint, borrow_mint)
        if value is not None:
            return value, SOURCE_REGISTRY
        value = self._static_threshold(deposit_mint, borrow_mint)
        if value is not None:
            return value, SOURCE_STATIC
        return self._default, SOURCE_DEFAULT

    def threshold_of(self, deposit_mint: str, borrow_mint: str) -> float:
        return self.lookup(deposit_mint, borrow_mint)[0]

    def source_of(self, deposit_mint: str, borrow_mint: str) -> str:
        return self.lookup(deposit_mint, borrow_mint)[1]

    __call__ = threshold_of
