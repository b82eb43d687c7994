"""Configuration for the analytics engine."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Tunable engine settings.

    Threshold policies live in ``promolens.analytics.policy``; this model only
    carries operational defaults.
    """

    time_decay_factor: float = Field(default=0.7, gt=0.0, le=1.0)
    default_lookback_days: int = Field(default=30, gt=0)
    cohort_lookback_days: int = Field(default=90, gt=0)
    pattern_limit: int = Field(default=20, gt=0)
    max_recommendations: int = Field(default=3, ge=0)
    report_timeout_seconds: float | None = Field(default=None, gt=0)

    @classmethod
    def from_env(cls) -> AnalyticsConfig:
        """Load configuration from PROMOLENS_* environment variables."""
        values: dict[str, str] = {}
        for name in cls.model_fields:
            env_value = os.getenv(f"PROMOLENS_{name.upper()}")
            if env_value:
                values[name] = env_value
        return cls(**values)
