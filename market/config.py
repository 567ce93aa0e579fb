"""
Settings for the dashboard and the export script.

Defaults reproduce the reference dataset. Every field can be overridden
through a MARKET_<FIELD> environment variable (e.g. MARKET_SEED=7,
MARKET_NUM_YEARS=5); invalid values fail fast with a pydantic
ValidationError before anything is generated.
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from market.dimensions import DEFAULT_DIMENSIONS, FIRST_YEAR, NUM_YEARS, DimensionTables
from market.generator import FIRST_RECORD_ID

logger = logging.getLogger(__name__)

ENV_PREFIX = "MARKET_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class MarketSettings(BaseModel):
    """Generation and forecast settings."""

    seed: int = Field(42, ge=0, description="Seed of the LCG that drives generation")
    start_year: int = Field(FIRST_YEAR, description="First generated year")
    num_years: int = Field(NUM_YEARS, ge=1, le=50, description="Number of contiguous years to generate")
    first_record_id: int = Field(FIRST_RECORD_ID, ge=0, description="ID of the first generated record")
    base_year: int = Field(2024, description="Base year of the incremental opportunity waterfall")
    forecast_end_year: int = Field(2031, description="Last increment year of the waterfall")
    log_level: str = Field("INFO", description="Root log level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def validate_forecast_window(self):
        if self.forecast_end_year <= self.base_year:
            raise ValueError("forecast_end_year must be after base_year")
        return self

    @property
    def end_year(self) -> int:
        return self.start_year + self.num_years - 1

    def dimensions(self) -> DimensionTables:
        """Default dimension tables restricted to the configured year range."""
        return DEFAULT_DIMENSIONS.with_years(self.start_year, self.num_years)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> MarketSettings:
    """Build settings from MARKET_* variables over the defaults."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for name in MarketSettings.model_fields:
        key = f"{ENV_PREFIX}{name.upper()}"
        if key in environ:
            overrides[name] = environ[key]
    if overrides:
        logger.info("Settings overridden from environment: %s", ", ".join(sorted(overrides)))
    return MarketSettings(**overrides)
