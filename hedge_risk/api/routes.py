from __future__ import annotations

import logging
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from ..errors import UnknownAssetError
from ..services import RiskEngine
from .schemas import (
    ErrorResponse,
    LeaderboardResponse,
    ObligationOut,
    ObligationsResponse,
    PoolsResponse,
    PoolStatsOut,
    QuoteRequest,
    QuoteResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_engine(request: Request) -> RiskEngine:
    return request.app.state.engine


def get_cache_control(request: Request) -> str:
    return request.app.state.config.leaderboard.cache_control


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/leaderboard",
    response_model=LeaderboardResponse,
    responses={500: {"model": ErrorResponse}},
)
async def leaderboard(
    response: Response,
    engine: Annotated[RiskEngine, Depends(get_engine)],
    cache_control: Annotated[str, Depends(get_cache_control)],
    force_refresh: Annotated[bool, Query()] = False,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(alias="pageSize", ge=1)] = None,
):
    logger.info(
        "Leaderboard request: force_refresh=%s page=%d page_size=%s",
        force_refresh, page, page_size,
    )
    try:
        if force_refresh:
            await engine.refresh_prices()
        result = await engine.leaderboard.get_leaderboard(
            page=page, page_size=page_size, force_refresh=force_refresh
        )
    except Exception as exc:
        logger.exception("Leaderboard request failed")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch leaderboard", "message": str(exc)},
        )

    response.headers["Cache-Control"] = cache_control
    return LeaderboardResponse.from_page(result)


@router.get(
    "/obligations",
    response_model=ObligationsResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def obligations(
    engine: Annotated[RiskEngine, Depends(get_engine)],
    owner: Annotated[str | None, Query()] = None,
):
    try:
        summaries = await engine.leaderboard.list_obligations(owner)
    except ValueError as exc:
        return JSONResponse(status_code=400, content={"error": f"Invalid owner: {exc}"})
    except Exception as exc:
        logger.exception("Obligations request failed")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch obligations", "message": str(exc)},
        )

    return ObligationsResponse(
        count=len(summaries),
        market=engine.leaderboard.market_address,
        owner=owner,
        obligations=[ObligationOut.from_summary(s) for s in summaries],
    )


@router.get(
    "/pools",
    response_model=PoolsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def pools(engine: Annotated[RiskEngine, Depends(get_engine)]):
    try:
        stats = await engine.pool_stats()
    except Exception as exc:
        logger.exception("Pools request failed")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch pools", "message": str(exc)},
        )

    return PoolsResponse(
        count=len(stats),
        market=engine.leaderboard.market_address,
        pools=[PoolStatsOut.from_stats(s) for s in stats],
    )


@router.post(
    "/risk/quote",
    response_model=QuoteResponse,
    responses={400: {"model": ErrorResponse}},
)
def risk_quote(
    body: QuoteRequest,
    engine: Annotated[RiskEngine, Depends(get_engine)],
):
    try:
        quote, max_safe = engine.quote(
            [(p.mint, p.amount) for p in body.deposits],
            [(p.mint, p.amount) for p in body.borrows],
            body.candidate_mint,
            body.target_health,
        )
    except UnknownAssetError as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    return QuoteResponse(
        health_score=quote.health_score if math.isfinite(quote.health_score) else None,
        max_safe_borrow=max_safe,
        safe_amount=quote.safe_amount,
        max_amount=quote.max_amount,
    )
