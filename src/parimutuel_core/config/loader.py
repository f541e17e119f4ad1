"""Config loader — reads YAML, applies PARIMUTUEL_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from parimutuel_core.config.schema import AppConfig

# env var -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PARIMUTUEL_DATABASE_URL": ("database", "url"),
    "PARIMUTUEL_LOG_LEVEL": ("logging", "level"),
    "PARIMUTUEL_LOG_FORMAT": ("logging", "format"),
    "PARIMUTUEL_GATEWAY_EMAIL": ("gateway", "email"),
    "PARIMUTUEL_GATEWAY_PASSWORD": ("gateway", "password"),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        PARIMUTUEL_DATABASE_URL      -> database.url
        PARIMUTUEL_LOG_LEVEL         -> logging.level
        PARIMUTUEL_LOG_FORMAT        -> logging.format
        PARIMUTUEL_GATEWAY_EMAIL     -> gateway.email
        PARIMUTUEL_GATEWAY_PASSWORD  -> gateway.password
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data.setdefault(section, {})[key] = value

    return AppConfig.model_validate(data)
