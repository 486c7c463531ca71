from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from importers.movements import FundsCheckMode


class AppSettings(BaseSettings):
    db_file: Path = Path("artifacts/portfolio.db")
    funds_check_mode: FundsCheckMode = FundsCheckMode.RUNNING
    log_level: str = "INFO"
    price_sync_timeout: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="PORTFOLIO_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@cache
def config() -> AppSettings:
    return AppSettings()
