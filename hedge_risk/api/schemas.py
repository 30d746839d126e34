from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models import LeaderboardPage, ObligationSummary, PoolStats, Position


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LeaderboardEntryOut(CamelModel):
    account_id: str
    owner_id: str
    portfolio_value_usd: float
    total_deposits_usd: float
    total_borrows_usd: float


class LeaderboardResponse(CamelModel):
    cached: bool
    leaderboard: list[LeaderboardEntryOut]
    obligation_count: int
    page: int
    page_size: int
    scanned_at: int
    total_entries: int
    total_pages: int

    @classmethod
    def from_page(cls, page: LeaderboardPage) -> LeaderboardResponse:
        return cls(
            cached=page.cached,
            leaderboard=[
                LeaderboardEntryOut(
                    account_id=e.account_id,
                    owner_id=e.owner_id,
                    portfolio_value_usd=e.portfolio_value_usd,
                    total_deposits_usd=e.total_deposits_usd,
                    total_borrows_usd=e.total_borrows_usd,
                )
                for e in page.leaderboard
            ],
            obligation_count=page.obligation_count,
            page=page.page,
            page_size=page.page_size,
            scanned_at=page.scanned_at,
            total_entries=page.total_entries,
            total_pages=page.total_pages,
        )


class PositionOut(CamelModel):
    mint: str
    symbol: str
    amount: float
    value_usd: float

    @classmethod
    def from_position(cls, position: Position) -> PositionOut:
        value = position.amount * position.asset.price
        return cls(
            mint=position.asset.mint,
            symbol=position.asset.symbol,
            amount=position.amount,
            value_usd=value if math.isfinite(value) else 0.0,
        )


class ObligationOut(CamelModel):
    address: str
    owner: str
    market: str
    deposits_usd: float
    borrows_usd: float
    net_usd: float
    health_score: float | None
    deposits: list[PositionOut]
    borrows: list[PositionOut]

    @classmethod
    def from_summary(cls, summary: ObligationSummary) -> ObligationOut:
        return cls(
            address=summary.address,
            owner=summary.owner,
            market=summary.market,
            deposits_usd=summary.valuation.deposits_usd,
            borrows_usd=summary.valuation.borrows_usd,
            net_usd=summary.valuation.net_usd,
            health_score=_finite_or_none(summary.health_score),
            deposits=[PositionOut.from_position(p) for p in summary.deposits],
            borrows=[PositionOut.from_position(p) for p in summary.borrows],
        )


class ObligationsResponse(CamelModel):
    count: int
    market: str
    owner: str | None = None
    obligations: list[ObligationOut]


class PositionIn(CamelModel):
    mint: str
    amount: float = Field(ge=0)


class QuoteRequest(CamelModel):
    deposits: list[PositionIn] = Field(default_factory=list)
    borrows: list[PositionIn] = Field(default_factory=list)
    candidate_mint: str
    target_health: float | None = Field(default=None, gt=0)


class QuoteResponse(CamelModel):
    health_score: float | None
    max_safe_borrow: float
    safe_amount: float
    max_amount: float


class PoolStatsOut(CamelModel):
    address: str
    mint: str
    symbol: str
    price: float
    total_deposits: float
    total_borrows: float
    total_deposits_usd: float
    total_borrows_usd: float
    available_liquidity: float
    utilization_rate: float
    borrow_apy_bps: int
    deposit_apy_bps: int
    last_timestamp: int

    @classmethod
    def from_stats(cls, stats: PoolStats) -> PoolStatsOut:
        return cls(
            address=stats.address,
            mint=stats.mint,
            symbol=stats.symbol,
            price=stats.price,
            total_deposits=stats.total_deposits,
            total_borrows=stats.total_borrows,
            total_deposits_usd=stats.total_deposits_usd,
            total_borrows_usd=stats.total_borrows_usd,
            available_liquidity=stats.available_liquidity,
            utilization_rate=stats.utilization_rate,
            borrow_apy_bps=stats.borrow_apy_bps,
            deposit_apy_bps=stats.deposit_apy_bps,
            last_timestamp=stats.last_timestamp,
        )


class PoolsResponse(CamelModel):
    count: int
    market: str
    pools: list[PoolStatsOut]


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
