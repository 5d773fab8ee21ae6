"""Process-level configuration for ucp_core tools and services."""

from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .keys import DEFAULT_KEY_ID_PREFIX
from .logs import VALID_LOG_LEVELS
from .models import DEFAULT_UCP_VERSION
from .profile import DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_CACHE_TTL, DEFAULT_TIMEOUT


class UcpConfig(BaseModel):
    """Top-level configuration model.

    Per-scope settings (keys, authorization policy, per-scope UCP
    version) live in the ConfigStore, not here.
    """

    database_path: str = "./ucp_config.db"
    ucp_version: str = DEFAULT_UCP_VERSION
    key_id_prefix: str = DEFAULT_KEY_ID_PREFIX
    profile_cache_ttl: float = Field(default=DEFAULT_CACHE_TTL, ge=0)
    profile_cache_max_entries: int = Field(default=DEFAULT_CACHE_MAX_ENTRIES, ge=1)
    profile_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        if v.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of {sorted(VALID_LOG_LEVELS)}"
            )
        return v.upper()


def load_config(path: Optional[str] = None) -> UcpConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to UCP_CONFIG env
            variable or 'ucp.yaml' in the current directory.
    """

    config_path = path or os.getenv("UCP_CONFIG", "ucp.yaml")
    data: dict = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    env_db_path = os.getenv("UCP_DATABASE_PATH")
    if env_db_path:
        data["database_path"] = env_db_path
    env_log_level = os.getenv("UCP_LOG_LEVEL")
    if env_log_level:
        data["log_level"] = env_log_level
    return UcpConfig(**data)
