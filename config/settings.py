"""Application settings and configuration management."""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/bouncer.db")
    SESSION_TTL_SECONDS: int = 180 * 60

    APP_CONFIG_PATH: str = "app_config.json"
    POLICY_PATH: str = "config/policy.yaml"

    AGENT_TIMEOUT_S: float = 30.0

    BASE_ALLOCATION: int = 800
    ALLOCATION_SIGMA: float = 2.0

    # Operator override; empty disables it.
    BYPASS_PHRASE: Optional[str] = None

    SIGNER_PRIVATE_KEY: Optional[str] = None

    GOLDRUSH_API_KEY: Optional[str] = None
    GOLDRUSH_BASE_URL: str = "https://api.covalenthq.com/v1"
    WALLET_CHAIN: str = "base-mainnet"

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
