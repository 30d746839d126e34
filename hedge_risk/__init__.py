"""hedge.wtf lending risk solver and leaderboard service."""

__version__ = "0.1.0"
