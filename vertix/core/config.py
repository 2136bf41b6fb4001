"""
Engine configuration parameters for Vertix.

Defines auction timing rules, anti-snipe constants, and fee limits.
Values can be overridden from a dotenv file or VERTIX_* environment
variables via load_config().
"""

import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, model_validator

HOUR = 3600
DAY = 24 * HOUR

ENV_PREFIX = "VERTIX_"


class EngineConfig(BaseModel):
    """Engine-wide configuration parameters"""

    # Auction duration bounds (seconds)
    min_duration: int = Field(default=HOUR, gt=0)
    max_duration: int = Field(default=30 * DAY, gt=0)

    # Anti-snipe rule
    extension_threshold: int = Field(default=5 * 60, ge=0)  # Bids closer than this to the end extend it
    extension_window: int = Field(default=10 * 60, ge=0)    # New end = bid time + window

    # Emergency unwind delay after end_time
    emergency_delay: int = Field(default=7 * DAY, gt=0)

    # Bidding defaults
    default_bid_increment_bps: int = Field(default=500, ge=1, le=10_000)

    # Fees
    platform_fee_bps: int = Field(default=250, ge=0, le=10_000)
    max_platform_fee_bps: int = Field(default=1_000, ge=0, le=10_000)

    # Paths
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")
    log_to_file: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> "EngineConfig":
        if self.min_duration > self.max_duration:
            raise ValueError("min_duration must not exceed max_duration")
        if self.platform_fee_bps > self.max_platform_fee_bps:
            raise ValueError("platform_fee_bps exceeds max_platform_fee_bps")
        return self


def _collect_overrides(values: Dict[str, Optional[str]]) -> Dict[str, str]:
    overrides = {}
    for key, value in values.items():
        if value is None or not key.upper().startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX):].lower()
        if field_name in EngineConfig.model_fields:
            overrides[field_name] = value
    return overrides


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from a dotenv file and the environment.

    Environment variables take precedence over file values.

    Args:
        config_path: Optional path to a dotenv-style file

    Returns:
        EngineConfig instance
    """
    overrides: Dict[str, str] = {}
    if config_path:
        overrides.update(_collect_overrides(dotenv_values(config_path)))
    overrides.update(_collect_overrides(dict(os.environ)))

    return EngineConfig(**overrides)
