"""Solana JSON-RPC client with fallback support."""
from __future__ import annotations

import base64
import logging
import ssl
from dataclasses import dataclass
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import RpcError

logger = logging.getLogger(__name__)

# getMultipleAccounts accepts at most 100 keys per request.
MAX_ACCOUNTS_PER_REQUEST = 100


@dataclass(frozen=True)
class MemcmpFilter:
    """Match ``data`` at ``offset`` bytes into the account."""

    offset: int
    data: bytes

    def to_rpc(self) -> dict[str, Any]:
        return {
            "memcmp": {
                "offset": self.offset,
                "bytes": base64.b64encode(self.data).decode("ascii"),
                "encoding": "base64",
            }
        }


class SolanaClient:
    """Solana RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.commitment = config.commitment
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RpcError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RpcError(f"All RPC endpoints failed. Last error: {last_error}")

    @staticmethod
    def _decode_account_data(account: dict[str, Any] | None) -> bytes | None:
        if not account:
            return None
        data = account.get("data")
        if isinstance(data, list) and data:
            return base64.b64decode(data[0])
        return None

    async def get_multiple_accounts(
        self, addresses: list[str], batch_size: int = MAX_ACCOUNTS_PER_REQUEST
    ) -> list[bytes | None]:
        """Fetch raw account data in batches; ``None`` for missing accounts.

        The result is aligned with ``addresses``.
        """
        batch_size = max(1, min(batch_size, MAX_ACCOUNTS_PER_REQUEST))
        accounts: list[bytes | None] = []

        for start in range(0, len(addresses), batch_size):
            batch = addresses[start : start + batch_size]
            result = await self.rpc_call(
                "getMultipleAccounts",
                [batch, {"encoding": "base64", "commitment": self.commitment}],
            )
            values = (result or {}).get("value") or []
            if len(values) != len(batch):
                raise RpcError(
                    f"getMultipleAccounts returned {len(values)} entries for "
                    f"{len(batch)} addresses"
                )
            accounts.extend(self._decode_account_data(v) for v in values)

        logger.debug(
            "Fetched %d accounts (%d missing)",
            len(accounts),
            sum(1 for a in accounts if a is None),
        )
        return accounts

    async def get_account(self, address: str) -> bytes | None:
        """Fetch one account's raw data, ``None`` if it does not exist."""
        result = await self.rpc_call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": self.commitment}],
        )
        return self._decode_account_data((result or {}).get("value"))

    async def get_program_account_addresses(
        self,
        program_id: str,
        filters: list[MemcmpFilter],
        data_slice: tuple[int, int] | None = (0, 0),
    ) -> list[str]:
        """Return addresses of program accounts matching every filter."""
        config: dict[str, Any] = {
            "encoding": "base64",
            "commitment": self.commitment,
            "filters": [f.to_rpc() for f in filters],
        }
        if data_slice is not None:
            config["dataSlice"] = {"offset": data_slice[0], "length": data_slice[1]}

        result = await self.rpc_call("getProgramAccounts", [program_id, config])
        return [item["pubkey"] for item in (result or []) if "pubkey" in item]

    async def get_program_accounts(
        self, program_id: str, filters: list[MemcmpFilter]
    ) -> list[tuple[str, bytes]]:
        """Return ``(address, data)`` for program accounts matching every filter."""
        config: dict[str, Any] = {
            "encoding": "base64",
            "commitment": self.commitment,
            "filters": [f.to_rpc() for f in filters],
        }
        result = await self.rpc_call("getProgramAccounts", [program_id, config])

        accounts: list[tuple[str, bytes]] = []
        for item in result or []:
            data = self._decode_account_data(item.get("account"))
            if data is not None:
                accounts.append((item["pubkey"], data))
        return accounts
