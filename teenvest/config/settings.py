"""
Teenvest Configuration

Environment-driven settings using pydantic-settings. Only the engine facade
reads these; scorer and planner receive explicit config objects built from
them.
"""

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DisciplineConfig(BaseModel):
    """Thresholds and penalty weights for the discipline score."""

    model_config = ConfigDict(frozen=True)

    revenge_window_ms: int = Field(default=60_000, gt=0)
    plan_tolerance_pct: float = Field(default=0.005, ge=0, lt=1)
    leverage_threshold: float = Field(default=0.5, gt=0)

    no_plan_adherence_rate: float = Field(default=0.7, ge=0, le=1)
    no_plan_penalty: int = Field(default=10, ge=0, le=100)
    plan_miss_weight: int = Field(default=30, ge=0, le=100)

    revenge_penalty_per_trade: int = Field(default=12, ge=0)
    revenge_penalty_cap: int = Field(default=30, ge=0, le=100)
    leverage_penalty_per_trade: int = Field(default=8, ge=0)
    leverage_penalty_cap: int = Field(default=20, ge=0, le=100)

    at_risk_threshold: int = Field(default=50, ge=0, le=100)


class WeightingScheme(str, Enum):
    """Basket weighting policies."""

    RANK = "rank"
    EQUAL = "equal"


class ReplicationConfig(BaseModel):
    """Basket size, weighting and share precision for phantom replication."""

    model_config = ConfigDict(frozen=True)

    holdings_count: int = Field(default=6, ge=1, le=50)
    weighting: WeightingScheme = WeightingScheme.RANK
    share_precision: int = Field(default=4, ge=0, le=8)


class TeenvestSettings(BaseSettings):
    """
    Application settings loaded from TEENVEST_* environment variables.

    Every discipline and replication threshold can be overridden here;
    defaults match the product's published scoring rules.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TEENVEST_",
        case_sensitive=False,
        extra="ignore",
    )

    # Discipline scoring
    REVENGE_WINDOW_MS: int = Field(default=60_000, gt=0)
    PLAN_TOLERANCE_PCT: float = Field(default=0.005, ge=0, lt=1)
    LEVERAGE_THRESHOLD: float = Field(default=0.5, gt=0)
    AT_RISK_THRESHOLD: int = Field(default=50, ge=0, le=100)
    DEFAULT_STARTING_BALANCE: float = Field(
        default=10_000.0,
        gt=0,
        description="Starting balance assumed when the profile has none.",
    )

    # Phantom replication
    PHANTOM_HOLDINGS_COUNT: int = Field(default=6, ge=1, le=50)
    PHANTOM_WEIGHTING: WeightingScheme = WeightingScheme.RANK
    PHANTOM_SHARE_PRECISION: int = Field(default=4, ge=0, le=8)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    def discipline_config(self) -> DisciplineConfig:
        """Build the explicit scorer configuration."""
        return DisciplineConfig(
            revenge_window_ms=self.REVENGE_WINDOW_MS,
            plan_tolerance_pct=self.PLAN_TOLERANCE_PCT,
            leverage_threshold=self.LEVERAGE_THRESHOLD,
            at_risk_threshold=self.AT_RISK_THRESHOLD,
        )

    def replication_config(self) -> ReplicationConfig:
        """Build the explicit planner configuration."""
        return ReplicationConfig(
            holdings_count=self.PHANTOM_HOLDINGS_COUNT,
            weighting=self.PHANTOM_WEIGHTING,
            share_precision=self.PHANTOM_SHARE_PRECISION,
        )


@lru_cache()
def get_settings() -> TeenvestSettings:
    """
    Get cached settings instance.

    Returns:
        TeenvestSettings with values from environment.
    """
    return TeenvestSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (tests, or after env changes)."""
    get_settings.cache_clear()
