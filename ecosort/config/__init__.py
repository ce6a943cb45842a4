"""Configuration management."""

from .loader import Config, default_config_path, load_config, save_config
from .models import CacheConfig, ConfigModel, PostgresConfig, ValidatorConfig

__all__ = [
    "Config",
    "ConfigModel",
    "CacheConfig",
    "PostgresConfig",
    "ValidatorConfig",
    "default_config_path",
    "load_config",
    "save_config",
]
