"""Liquidation thresholds and the health / safe-borrow solver."""
from .solver import (
    ThresholdFn,
    borrow_limit_usd,
    borrow_quote,
    health_score,
    max_safe_borrow_amount,
    position_value_usd,
    positions_value_usd,
)
from .thresholds import DEFAULT_THRESHOLD, ThresholdBook, normalize_threshold

__all__ = [
    "DEFAULT_THRESHOLD",
    "ThresholdBook",
    "ThresholdFn",
    "borrow_limit_usd",
    "borrow_quote",
    "health_score",
    "max_safe_borrow_amount",
    "normalize_threshold",
    "position_value_usd",
    "positions_value_usd",
]
