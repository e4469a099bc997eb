import os
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, field_validator

from helpers.constants import (
    DATA_DIR_ENV_VAR,
    DEFAULT_DATA_DIR,
    DEFAULT_RECONNECT_SECONDS,
    DEFAULT_RENDER_DEPTH,
    DEFAULT_SYMBOLS,
    RECONNECT_SECONDS_ENV_VAR,
    RENDER_DEPTH_ENV_VAR,
    SYMBOLS_ENV_VAR,
)
from helpers.types.depth import Symbol


class DepthLogConfig(BaseModel):
    """Settings shared by the collector and the query script"""

    data_dir: Path = DEFAULT_DATA_DIR
    symbols: List[Symbol] = Field(
        default_factory=lambda: [Symbol(s) for s in DEFAULT_SYMBOLS]
    )
    reconnect_seconds: float = Field(default=DEFAULT_RECONNECT_SECONDS, ge=0)
    render_depth: int = Field(default=DEFAULT_RENDER_DEPTH, ge=1)

    @field_validator("symbols", mode="before")
    @classmethod
    def split_symbols(cls, value: str | List[str]) -> List[Symbol]:
        """Accepts a list or a comma separated string like ETHUSDT,ethbtc"""
        if isinstance(value, str):
            value = [s for s in value.split(",") if s.strip()]
        if len(value) == 0:
            raise ValueError("Need at least one symbol")
        return [Symbol(s) for s in value]

    @classmethod
    def from_env(cls) -> "DepthLogConfig":
        """Reads overrides from env vars. Unset env vars keep the defaults"""
        env_to_field = {
            DATA_DIR_ENV_VAR: "data_dir",
            SYMBOLS_ENV_VAR: "symbols",
            RECONNECT_SECONDS_ENV_VAR: "reconnect_seconds",
            RENDER_DEPTH_ENV_VAR: "render_depth",
        }
        values = {
            field_name: os.environ[env_var]
            for env_var, field_name in env_to_field.items()
            if os.environ.get(env_var)
        }
        return cls.model_validate(values)
