"""
Configuration loading for the order lifecycle engine.

This module provides utilities for loading, validating, and creating
configuration files.
"""

from pathlib import Path

from .models import EngineConfig


def load_config(
    config_path: str | Path | None = None, config_name: str = "config.json"
) -> EngineConfig:
    """
    Load configuration from file with path resolution.

    When no explicit path is given and no file is found in the search
    locations, the defaults are returned (environment overrides still apply).

    Args:
        config_path: Explicit path to config file or directory containing config
        config_name: Name of config file (default: "config.json")

    Returns:
        EngineConfig: Loaded and validated configuration

    Raises:
        FileNotFoundError: If an explicit config_path does not exist
    """
    if config_path is None:
        search_paths = [
            Path.cwd() / config_name,
            Path.cwd() / "config" / config_name,
        ]

        for path in search_paths:
            if path.exists():
                config_path = path
                break
        else:
            return EngineConfig()

    config_path = Path(config_path)

    # If path is a directory, look for config file inside it
    if config_path.is_dir():
        config_path = config_path / config_name

    return EngineConfig.from_file(config_path)


def create_default_config(output_path: str | Path) -> EngineConfig:
    """
    Create a default configuration file with standard values.

    Args:
        output_path: Where to save the default config file

    Returns:
        EngineConfig: The default configuration
    """
    default_config = EngineConfig()
    default_config.to_file(output_path)
    return default_config
