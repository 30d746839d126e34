"""Exception hierarchy."""
from __future__ import annotations


class HedgeRiskError(Exception):
    """Base class for all hedge-risk errors."""


class MarketResolutionError(HedgeRiskError):
    """The configured market (or one of its registries) cannot be resolved."""


class AccountDecodeError(HedgeRiskError, ValueError):
    """Raw account bytes do not match the expected Anchor layout."""


class RpcError(HedgeRiskError, RuntimeError):
    """Every RPC endpoint failed, or the node returned a JSON-RPC error."""


class UnknownAssetError(HedgeRiskError, LookupError):
    """A mint that is not in the configured asset book."""
