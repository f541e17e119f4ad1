"""Configuration system."""

from parimutuel_core.config.loader import load_config
from parimutuel_core.config.schema import AppConfig, PolicyConfig

__all__ = ["AppConfig", "PolicyConfig", "load_config"]
