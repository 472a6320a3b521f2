"""
Configuration Management for the Budget Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself never reads the environment; callers that want a
different payday or holiday look-ahead set it once, here.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """
    Budget engine settings.

    Loads configuration from BUDGET_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Budget period
    payday: int = Field(
        default=25,
        ge=1,
        le=28,
        description="Day of month the budget period starts (1 = calendar month)"
    )

    # Holiday look-ahead
    upcoming_holiday_limit: int = Field(
        default=10,
        ge=0,
        le=50,
        description="How many upcoming holidays to report in a daily budget"
    )


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get engine settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return EngineSettings()
