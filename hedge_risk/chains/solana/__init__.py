from .client import MemcmpFilter, SolanaClient

__all__ = ["MemcmpFilter", "SolanaClient"]
