"""Runtime settings loaded from the environment (and apps/api/.env)."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from packages.common.paths import DATA_DIR, ENV_FILE

_TRUTHY = ("true", "1", "yes")


class LoggingSettings(BaseModel):
    log_level: str = "INFO"
    log_file: str | None = None


class Settings(BaseModel):
    data_dir: Path = DATA_DIR
    simulate_latency: bool = True
    failure_rate: float = Field(default=0.05, ge=0.0, le=1.0)
    random_seed: int | None = None
    sync_timeout_seconds: float = Field(default=60.0, gt=0)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def load_settings(env_file: Path | None = ENV_FILE) -> Settings:
    if env_file is not None:
        load_dotenv(dotenv_path=env_file)
    seed = os.getenv("SYNC_RANDOM_SEED")
    return Settings(
        data_dir=Path(os.getenv("FAUKE_DATA_DIR", str(DATA_DIR))),
        simulate_latency=_flag("SIMULATE_LATENCY", True),
        failure_rate=float(os.getenv("SYNC_FAILURE_RATE", "0.05")),
        random_seed=int(seed) if seed else None,
        sync_timeout_seconds=float(os.getenv("SYNC_TIMEOUT_SECONDS", "60")),
        logging=LoggingSettings(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
        ),
    )


def configure_logging(settings: LoggingSettings) -> None:
    """Replace loguru's default sink with the configured ones."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level)
