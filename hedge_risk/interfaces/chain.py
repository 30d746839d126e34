"""Account fetcher protocol — Solana RPC abstraction."""
from typing import Protocol

from ..chains.solana.client import MemcmpFilter


class AccountFetcher(Protocol):
    """Abstract interface for reading program accounts."""

    async def get_multiple_accounts(
        self, addresses: list[str], batch_size: int = 100
    ) -> list[bytes | None]: ...

    async def get_account(self, address: str) -> bytes | None: ...

    async def get_program_account_addresses(
        self,
        program_id: str,
        filters: list[MemcmpFilter],
        data_slice: tuple[int, int] | None = (0, 0),
    ) -> list[str]: ...

    async def get_program_accounts(
        self, program_id: str, filters: list[MemcmpFilter]
    ) -> list[tuple[str, bytes]]: ...
