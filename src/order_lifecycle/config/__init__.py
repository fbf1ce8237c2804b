"""Configuration models and loaders."""

from .models import DatabaseSettings, EngineConfig, LifecycleSettings
from .settings import create_default_config, load_config

__all__ = [
    "DatabaseSettings",
    "EngineConfig",
    "LifecycleSettings",
    "create_default_config",
    "load_config",
]
