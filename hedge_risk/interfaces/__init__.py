"""Protocol interfaces for hedge-risk collaborators."""
from .chain import AccountFetcher
from .price_oracle import PriceOracle

__all__ = ["AccountFetcher", "PriceOracle"]
