"""Pool accounts and per-pool market statistics."""
from __future__ import annotations

import logging

from ..addresses import pool_address
from ..assets import AssetBook
from ..errors import AccountDecodeError
from ..interfaces import AccountFetcher
from ..models import PoolRecord, PoolStats
from ..protocols.zodial.layout import Q60_SHIFT, decode_pool, q60_to_float
from ..risk.rates import borrow_apy_bps, deposit_apy_bps, utilization_bps

logger = logging.getLogger(__name__)


async def fetch_pools(
    fetcher: AccountFetcher,
    program_id: str,
    market_address: str,
    mints: list[str],
    batch_size: int = 100,
) -> dict[str, PoolRecord]:
    """Fetch and decode the pool of each mint; missing or bad pools are skipped."""
    addresses = [pool_address(program_id, market_address, m) for m in mints]
    accounts = await fetcher.get_multiple_accounts(addresses, batch_size=batch_size)

    pools: dict[str, PoolRecord] = {}
    for mint, address, data in zip(mints, addresses, accounts):
        if data is None:
            logger.warning("Pool %s for mint %s does not exist", address, mint)
            continue
        try:
            pools[mint] = decode_pool(address, data)
        except AccountDecodeError as e:
            logger.error("Failed to decode pool %s: %s", address, e)
    return pools


def _pool_total(shares_q60: int, factor_q60: int, decimals: int) -> float:
    # Pool totals are Q60 share sums, unlike per-obligation shares
    return q60_to_float((shares_q60 * factor_q60) >> Q60_SHIFT) / 10**decimals


def total_deposits(pool: PoolRecord, decimals: int) -> float:
    return _pool_total(pool.total_deposit_shares_q60, pool.deposit_factor_q60, decimals)


def total_borrows(pool: PoolRecord, decimals: int) -> float:
    return _pool_total(pool.total_borrow_shares_q60, pool.borrow_factor_q60, decimals)


def utilization_rate(deposits: float, borrows: float) -> float:
    """Borrows over deposits in percent; 0 for an empty pool."""
    if deposits == 0:
        return 0.0
    return borrows / deposits * 100


def pool_stats(pool: PoolRecord, assets: AssetBook) -> PoolStats:
    asset = assets.get(pool.mint)
    decimals = asset.decimals if asset else 0
    deposits = total_deposits(pool, decimals)
    borrows = total_borrows(pool, decimals)
    utilization = utilization_rate(deposits, borrows)
    util_bps = utilization_bps(utilization)
    return PoolStats(
        address=pool.address,
        mint=pool.mint,
        symbol=assets.symbol(pool.mint),
        price=asset.price if asset else 0.0,
        total_deposits=deposits,
        total_borrows=borrows,
        utilization_rate=utilization,
        borrow_apy_bps=borrow_apy_bps(pool.rate, util_bps),
        deposit_apy_bps=deposit_apy_bps(pool.rate, util_bps),
        last_timestamp=pool.last_timestamp,
    )
