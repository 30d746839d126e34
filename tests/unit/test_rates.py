"""Unit tests for the kinked interest-rate model."""
from __future__ import annotations

import math

import pytest

from hedge_risk.models import RateModel
from hedge_risk.risk.rates import (
    MAX_BORROW_APY_BPS_HARD,
    borrow_apy_bps,
    bps_to_percent,
    deposit_apy_bps,
    utilization_bps,
)

RATE = RateModel(
    kink_util_bps=8000,
    base_borrow_apy_bps=100,
    slope1_bps=400,
    slope2_bps=6000,
    reserve_factor_bps=1000,
    max_borrow_apy_bps=30000,
)


class TestBorrowApy:
    @pytest.mark.parametrize(
        "util, expected",
        [(0, 100), (5000, 300), (8000, 420), (9000, 1020), (10000, 1620)],
    )
    def test_kinked_curve(self, util: int, expected: int) -> None:
        assert borrow_apy_bps(RATE, util) == expected

    def test_soft_cap(self) -> None:
        rate = RateModel(8000, 100, 400, 6000, 1000, max_borrow_apy_bps=500)
        assert borrow_apy_bps(rate, 9000) == 500

    def test_hard_cap(self) -> None:
        rate = RateModel(8000, 40000, 400, 65535, 1000, max_borrow_apy_bps=60000)
        assert borrow_apy_bps(rate, 10000) == MAX_BORROW_APY_BPS_HARD

    def test_slope_terms_floor(self) -> None:
        # 3 * 400 / 10000 = 0.12 -> 0
        assert borrow_apy_bps(RATE, 3) == 100


class TestDepositApy:
    def test_scaled_by_utilization_less_reserve(self) -> None:
        # 300 * 0.5 * 0.9 = 135
        assert deposit_apy_bps(RATE, 5000) == 135
        # 1020 * 0.9 * 0.9 = 826.2 -> 826
        assert deposit_apy_bps(RATE, 9000) == 826

    def test_zero_utilization_earns_nothing(self) -> None:
        assert deposit_apy_bps(RATE, 0) == 0


class TestConversions:
    def test_bps_to_percent(self) -> None:
        assert bps_to_percent(1234) == 12.34

    @pytest.mark.parametrize(
        "percent, expected",
        [(45.0, 4500), (0.125, 13), (71.4286, 7143), (0.0, 0), (-3.0, 0), (math.nan, 0)],
    )
    def test_utilization_bps_rounds_half_up(self, percent: float, expected: int) -> None:
        assert utilization_bps(percent) == expected
