"""Service modules"""
from .cache import CacheKeys, ServerCache
from .engine import RiskEngine
from .leaderboard import LeaderboardService
from .market import MarketService
from .pools import fetch_pools, pool_stats
from .valuation import obligation_positions, value_obligation

__all__ = [
    "CacheKeys",
    "LeaderboardService",
    "MarketService",
    "RiskEngine",
    "ServerCache",
    "fetch_pools",
    "obligation_positions",
    "pool_stats",
    "value_obligation",
]
