"""Price oracle implementations."""
from .onchain import OnchainPriceOracle
from .pyth import PythOracle

__all__ = ["OnchainPriceOracle", "PythOracle"]
