from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import AppConfig
from ..interfaces import AccountFetcher
from ..services import RiskEngine, ServerCache
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    fetcher: AccountFetcher | None = None,
    cache: ServerCache | None = None,
) -> FastAPI:
    """Build the API application; services are created once per process."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = RiskEngine(config, fetcher=fetcher, cache=cache)
        await engine.start()
        app.state.config = config
        app.state.engine = engine
        yield
        engine.cache.clear_all()

    app = FastAPI(
        title="hedge-risk",
        description="Lending risk solver and leaderboard API for hedge.wtf markets.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
