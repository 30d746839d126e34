"""Kinked interest-rate model — borrow and deposit APY from utilization.

All rates are integer basis points. The borrow APY rises along ``slope1``
up to the kink utilization and along ``slope2`` beyond it, then is capped
by the pool's own maximum and by a program-wide hard cap. Depositors earn
the borrow APY scaled by utilization, less the reserve factor.
"""
from __future__ import annotations

import math

from ..models import RateModel
from .thresholds import BPS_DENOM

MAX_BORROW_APY_BPS_HARD = 50_000  # 500%


def bps_to_percent(bps: int) -> float:
    return bps / 100


def utilization_bps(utilization_percent: float) -> int:
    """Round a utilization percentage to basis points, halves up."""
    if not math.isfinite(utilization_percent) or utilization_percent <= 0:
        return 0
    return math.floor(utilization_percent * 100 + 0.5)


def borrow_apy_bps(rate: RateModel, util_bps: int) -> int:
    kink = rate.kink_util_bps
    apy = rate.base_borrow_apy_bps
    if util_bps <= kink:
        apy += util_bps * rate.slope1_bps // BPS_DENOM
    else:
        apy += kink * rate.slope1_bps // BPS_DENOM
        apy += (util_bps - kink) * rate.slope2_bps // BPS_DENOM
    return min(apy, rate.max_borrow_apy_bps, MAX_BORROW_APY_BPS_HARD)


def deposit_apy_bps(rate: RateModel, util_bps: int) -> int:
    borrow_apy = borrow_apy_bps(rate, util_bps)
    return (
        borrow_apy * util_bps * (BPS_DENOM - rate.reserve_factor_bps)
        // (BPS_DENOM * BPS_DENOM)
    )
