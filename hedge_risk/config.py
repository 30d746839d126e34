"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .addresses import normalize_address

logger = logging.getLogger(__name__)

DEFAULT_PROGRAM_ID = "5E1ikr753b8RQZdtohZAY8wmpjn2hu9dWzrN5xEasmtu"
DEFAULT_CACHE_CONTROL = "public, s-maxage=30, stale-while-revalidate=60"
PRICE_PROVIDERS = ("static", "pyth", "onchain")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30
    commitment: str = "confirmed"


@dataclass(frozen=True)
class MarketConfig:
    address: str = ""
    program_id: str = DEFAULT_PROGRAM_ID


@dataclass(frozen=True)
class AssetConfig:
    mint: str = ""
    symbol: str = ""
    name: str = ""
    decimals: int = 6
    price: float = 0.0
    cmc_id: int | None = None
    registry_index: int | None = None
    pyth_feed: str = ""
    # counter-asset cmc_id (as string) -> raw threshold (percent or decimal)
    threshold_matrix: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class RiskConfig:
    default_threshold: float = 0.9
    safe_health: float = 1.5
    max_health: float = 1.0


@dataclass(frozen=True)
class LeaderboardConfig:
    page_size: int = 100
    max_page_size: int = 1000
    batch_size: int = 100
    pool_factors_ttl_seconds: int = 24 * 60 * 60
    obligation_pdas_ttl_seconds: int = 5 * 60
    cache_control: str = DEFAULT_CACHE_CONTROL


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "static"
    pyth: PythConfig = field(default_factory=PythConfig)


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8001


@dataclass(frozen=True)
class AppConfig:
    solana: ChainConfig = field(default_factory=ChainConfig)
    market: MarketConfig = field(default_factory=MarketConfig)
    assets: tuple[AssetConfig, ...] = ()
    risk: RiskConfig = field(default_factory=RiskConfig)
    leaderboard: LeaderboardConfig = field(default_factory=LeaderboardConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _build_solana(raw: dict[str, Any]) -> ChainConfig:
    return ChainConfig(
        rpc_endpoints=tuple(e for e in raw.get("rpc_endpoints", []) or [] if e),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
        commitment=raw.get("commitment", "confirmed"),
    )


def _build_market(raw: dict[str, Any]) -> MarketConfig:
    return MarketConfig(
        address=raw.get("address", "") or "",
        program_id=raw.get("program_id", "") or DEFAULT_PROGRAM_ID,
    )


def _build_assets(raw: dict[str, Any]) -> tuple[AssetConfig, ...]:
    assets: list[AssetConfig] = []
    for mint, cfg in raw.items():
        cfg = cfg or {}
        matrix = {
            str(counter): float(value)
            for counter, value in (cfg.get("threshold_matrix") or {}).items()
        }
        assets.append(
            AssetConfig(
                mint=str(mint),
                symbol=cfg.get("symbol", ""),
                name=cfg.get("name", ""),
                decimals=int(cfg.get("decimals", 6)),
                price=float(cfg.get("price", 0.0) or 0.0),
                cmc_id=_optional_int(cfg.get("cmc_id")),
                registry_index=_optional_int(cfg.get("registry_index")),
                pyth_feed=cfg.get("pyth_feed", "") or "",
                threshold_matrix=matrix,
            )
        )
    return tuple(assets)


def _build_risk(raw: dict[str, Any]) -> RiskConfig:
    return RiskConfig(
        default_threshold=float(raw.get("default_threshold", 0.9)),
        safe_health=float(raw.get("safe_health", 1.5)),
        max_health=float(raw.get("max_health", 1.0)),
    )


def _build_leaderboard(raw: dict[str, Any]) -> LeaderboardConfig:
    return LeaderboardConfig(
        page_size=int(raw.get("page_size", 100)),
        max_page_size=int(raw.get("max_page_size", 1000)),
        batch_size=int(raw.get("batch_size", 100)),
        pool_factors_ttl_seconds=int(
            raw.get("pool_factors_ttl_seconds", LeaderboardConfig.pool_factors_ttl_seconds)
        ),
        obligation_pdas_ttl_seconds=int(
            raw.get(
                "obligation_pdas_ttl_seconds",
                LeaderboardConfig.obligation_pdas_ttl_seconds,
            )
        ),
        cache_control=raw.get("cache_control", DEFAULT_CACHE_CONTROL),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {}) or {}
    return PriceOracleConfig(
        provider=raw.get("provider", "static"),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
        ),
    )


def _build_server(raw: dict[str, Any]) -> ServerConfig:
    return ServerConfig(
        host=raw.get("host", "0.0.0.0"),
        port=int(raw.get("port", 8001)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        solana=_build_solana(raw.get("solana", {}) or {}),
        market=_build_market(raw.get("market", {}) or {}),
        assets=_build_assets(raw.get("assets", {}) or {}),
        risk=_build_risk(raw.get("risk", {}) or {}),
        leaderboard=_build_leaderboard(raw.get("leaderboard", {}) or {}),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {}) or {}),
        server=_build_server(raw.get("server", {}) or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _check_address(value: str, what: str) -> None:
    try:
        normalize_address(value)
    except ValueError as e:
        raise ValueError(f"{what} is not a valid public key: {value!r}") from e


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.solana.rpc_endpoints:
        raise ValueError("At least one Solana RPC endpoint must be configured")
    if cfg.solana.rpc_timeout <= 0:
        raise ValueError("solana.rpc_timeout must be positive")

    if not cfg.market.address:
        raise ValueError("market.address must be configured")
    _check_address(cfg.market.address, "market.address")
    _check_address(cfg.market.program_id, "market.program_id")

    for asset in cfg.assets:
        _check_address(asset.mint, "Asset mint")
        if not 0 <= asset.decimals <= 30:
            raise ValueError(
                f"Asset '{asset.symbol or asset.mint}' has invalid decimals {asset.decimals}"
            )

    if not 0 < cfg.risk.default_threshold <= 1:
        raise ValueError("risk.default_threshold must be in (0, 1]")
    if cfg.risk.safe_health <= 0 or cfg.risk.max_health <= 0:
        raise ValueError("risk health targets must be positive")

    lb = cfg.leaderboard
    if lb.page_size <= 0 or lb.max_page_size <= 0 or lb.batch_size <= 0:
        raise ValueError("leaderboard sizes must be positive")
    if lb.page_size > lb.max_page_size:
        raise ValueError("leaderboard.page_size exceeds leaderboard.max_page_size")
    if lb.pool_factors_ttl_seconds <= 0 or lb.obligation_pdas_ttl_seconds <= 0:
        raise ValueError("leaderboard cache TTLs must be positive")

    if cfg.price_oracle.provider not in PRICE_PROVIDERS:
        raise ValueError(
            f"Unknown price oracle provider '{cfg.price_oracle.provider}'"
        )
