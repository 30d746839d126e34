"""Obligation valuation — share balances to USD totals."""
from __future__ import annotations

import logging
import math

from ..assets import AssetBook
from ..models import ObligationRecord, ObligationValuation, PoolFactors, Position
from ..protocols.zodial.layout import shares_to_amount
from ..risk.solver import safe_multiply

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 6


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def value_obligation(
    record: ObligationRecord,
    pool_factors: dict[str, PoolFactors],
    prices: dict[str, float],
    decimals: dict[str, int],
) -> ObligationValuation:
    """Value every position of ``record`` at ``prices``.

    Positions are skipped (contributing zero) when empty, when the mint has
    no pool factors, when the price is missing or non-positive, or when the
    converted amount is not a positive finite number.
    """
    deposits_usd = 0.0
    borrows_usd = 0.0
    valued = 0
    skipped = 0

    for pos in record.positions:
        if pos.is_empty:
            continue

        factors = pool_factors.get(pos.mint)
        if factors is None:
            logger.warning(
                "No pool factors for mint %s in obligation %s", pos.mint, record.address
            )
            skipped += 1
            continue
        valued += 1

        price = prices.get(pos.mint)
        if price is None or not math.isfinite(price) or price <= 0:
            continue

        dec = decimals.get(pos.mint, DEFAULT_DECIMALS)

        if pos.deposit_shares_q60 > 0:
            amount = shares_to_amount(pos.deposit_shares_q60, factors.deposit_factor_q60, dec)
            if math.isfinite(amount) and amount > 0:
                deposits_usd += safe_multiply(amount, price)

        if pos.borrow_shares_q60 > 0:
            amount = shares_to_amount(pos.borrow_shares_q60, factors.borrow_factor_q60, dec)
            if math.isfinite(amount) and amount > 0:
                borrows_usd += safe_multiply(amount, price)

    deposits_usd = _finite_or_zero(deposits_usd)
    borrows_usd = _finite_or_zero(borrows_usd)

    return ObligationValuation(
        deposits_usd=deposits_usd,
        borrows_usd=borrows_usd,
        net_usd=_finite_or_zero(deposits_usd - borrows_usd),
        valued_positions=valued,
        skipped_positions=skipped,
    )


def obligation_positions(
    record: ObligationRecord,
    pool_factors: dict[str, PoolFactors],
    assets: AssetBook,
) -> tuple[list[Position], list[Position]]:
    """Convert ``record`` into solver deposits and borrows in UI units.

    Positions whose mint is not in the asset book or has no pool factors
    are left out.
    """
    deposits: list[Position] = []
    borrows: list[Position] = []

    for pos in record.positions:
        if pos.is_empty:
            continue
        asset = assets.get(pos.mint)
        factors = pool_factors.get(pos.mint)
        if asset is None or factors is None:
            logger.debug("Skipping position %s in obligation %s", pos.mint, record.address)
            continue

        if pos.deposit_shares_q60 > 0:
            amount = shares_to_amount(
                pos.deposit_shares_q60, factors.deposit_factor_q60, asset.decimals
            )
            if math.isfinite(amount) and amount > 0:
                deposits.append(Position(amount=amount, asset=asset))

        if pos.borrow_shares_q60 > 0:
            amount = shares_to_amount(
                pos.borrow_shares_q60, factors.borrow_factor_q60, asset.decimals
            )
            if math.isfinite(amount) and amount > 0:
                borrows.append(Position(amount=amount, asset=asset))

    return deposits, borrows
