"""Health score and safe-borrow solver — pure functions, no I/O.

Health score is the threshold-weighted collateral value divided by total
debt value. Each deposit is weighted by the average of its pairwise
thresholds against every borrow, weighted by that borrow's share of the
total debt:

    health = sum_d( dep_usd_d * sum_b( dist_b * thr(d, b) ) ) / total_borrow_usd

Adding ``x`` USD of a new borrow ``c`` and requiring ``health == H`` gives

    H*x^2 + (2*H*T - C)*x + (H*T^2 - A) = 0

with ``T`` the current debt, ``A = sum_d sum_b dep_usd_d * bor_usd_b * thr(d, b)``
and ``C = sum_d dep_usd_d * thr(d, c)``.
"""
from __future__ import annotations

import math
from typing import Callable, Sequence

from ..models import AssetRef, BorrowQuote, Position

ThresholdFn = Callable[[str, str], float]


def safe_multiply(a: float, b: float) -> float:
    """Multiply, treating a non-finite product as zero."""
    product = a * b
    return product if math.isfinite(product) else 0.0


def position_value_usd(position: Position) -> float:
    return safe_multiply(position.amount, position.asset.price)


def positions_value_usd(positions: Sequence[Position]) -> float:
    return sum(position_value_usd(p) for p in positions)


def borrow_limit_usd(
    deposits: Sequence[Position],
    borrows: Sequence[Position],
    threshold_of: ThresholdFn,
) -> float:
    """Threshold-weighted collateral value against the current borrow mix."""
    total_borrow = positions_value_usd(borrows)
    if total_borrow == 0:
        return 0.0

    dists = [position_value_usd(b) / total_borrow for b in borrows]

    limit = 0.0
    for dep in deposits:
        dep_usd = position_value_usd(dep)
        if dep_usd == 0:
            continue
        weighted = 0.0
        for bor, dist in zip(borrows, dists):
            weighted += dist * threshold_of(dep.asset.mint, bor.asset.mint)
        limit += dep_usd * weighted
    return limit


def health_score(
    deposits: Sequence[Position],
    borrows: Sequence[Position],
    threshold_of: ThresholdFn,
) -> float:
    """Liquidation-distance ratio; ``nan`` when there is no debt.

    Values above 1 mean a safety margin, 1 or below means liquidatable.
    """
    total_borrow = positions_value_usd(borrows)
    if total_borrow == 0:
        return math.nan
    return borrow_limit_usd(deposits, borrows, threshold_of) / total_borrow


def max_safe_borrow_amount(
    deposits: Sequence[Position],
    borrows: Sequence[Position],
    candidate: AssetRef,
    target_health: float,
    threshold_of: ThresholdFn,
) -> float:
    """Largest token amount of ``candidate`` borrowable at ``target_health``.

    Returns 0 whenever no safe amount can be determined.
    """
    if target_health <= 0 or not deposits:
        return 0.0

    price = candidate.price
    if not math.isfinite(price) or price <= 0:
        return 0.0

    a_sum = 0.0
    for dep in deposits:
        dep_usd = dep.amount * dep.asset.price
        if not math.isfinite(dep_usd):
            continue
        for bor in borrows:
            bor_usd = bor.amount * bor.asset.price
            if not math.isfinite(bor_usd):
                continue
            a_sum += dep_usd * bor_usd * threshold_of(dep.asset.mint, bor.asset.mint)

    c_sum = 0.0
    for dep in deposits:
        dep_usd = dep.amount * dep.asset.price
        if not math.isfinite(dep_usd):
            continue
        c_sum += dep_usd * threshold_of(dep.asset.mint, candidate.mint)

    if c_sum <= 0:
        return 0.0

    t = positions_value_usd(borrows)
    h = target_health

    a_coef = h
    b_coef = 2 * h * t - c_sum
    c_coef = h * t * t - a_sum

    discriminant = b_coef * b_coef - 4 * a_coef * c_coef
    if discriminant < 0:
        return 0.0

    sqrt_disc = math.sqrt(discriminant)
    x1 = (-b_coef + sqrt_disc) / (2 * a_coef)
    x2 = (-b_coef - sqrt_disc) / (2 * a_coef)

    x = max(x1, x2)
    if x < 0:
        x = min(x1, x2)
        if x < 0:
            return 0.0

    return max(0.0, x / price)


def borrow_quote(
    deposits: Sequence[Position],
    borrows: Sequence[Position],
    candidate: AssetRef,
    threshold_of: ThresholdFn,
    safe_health: float = 1.5,
    max_health: float = 1.0,
) -> BorrowQuote:
    """Safe and maximum borrow amounts plus the current health score."""
    return BorrowQuote(
        safe_amount=max_safe_borrow_amount(
            deposits, borrows, candidate, safe_health, threshold_of
        ),
        max_amount=max_safe_borrow_amount(
            deposits, borrows, candidate, max_health, threshold_of
        ),
        health_score=health_score(deposits, borrows, threshold_of),
    )
