"""
Configuration models for the order lifecycle engine.

These models define the structure and validation for the engine's
config.json file. Environment variables override selected file values.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class DatabaseSettings(BaseModel):
    """Configuration for the backing SQLite store."""

    path: str = Field(
        default="data/orders.db",
        description="Path to the SQLite database file",
        validate_default=True,
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    busy_timeout_ms: int = Field(
        default=5000,
        ge=0,
        description="How long a writer waits for the database lock",
    )

    @field_validator("path", mode="before")
    @classmethod
    def load_path_from_env(cls, v: str | None) -> str:
        """Prefer ORDER_LIFECYCLE_DB_PATH when set."""
        env_value = os.getenv("ORDER_LIFECYCLE_DB_PATH", "")
        if env_value.strip():
            return env_value
        return v or "data/orders.db"


class LifecycleSettings(BaseModel):
    """Tunables for order creation, numbering and querying."""

    estimated_delivery_minutes: int = Field(
        default=45,
        gt=0,
        description="Minutes added to creation time for delivery estimates",
    )
    order_number_prefix: str = Field(
        default="ORD", min_length=1, description="Prefix of human-readable numbers"
    )
    sequence_digits: int = Field(
        default=3, ge=1, description="Zero padding of the daily sequence"
    )
    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=100, gt=0)
    money_places: int = Field(
        default=2, ge=0, le=4, description="Decimal places for monetary amounts"
    )

    @field_validator("order_number_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefix is embedded in order numbers separated by dashes."""
        if "-" in v or not v.isalnum():
            raise ValueError("order_number_prefix must be alphanumeric")
        return v.upper()


class EngineConfig(BaseModel):
    """Main configuration model for the order lifecycle engine."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)
    log_level: str = Field(default="INFO", validate_default=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def load_log_level(cls, v: str | None) -> str:
        """Prefer ORDER_LIFECYCLE_LOG_LEVEL when set."""
        env_value = os.getenv("ORDER_LIFECYCLE_LOG_LEVEL", "")
        level = (env_value or v or "INFO").upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {level}")
        return level

    @classmethod
    def from_file(cls, config_path: str | Path) -> "EngineConfig":
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the config.json file

        Returns:
            EngineConfig: Validated configuration

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file is not valid JSON
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")

        logger.debug(f"Loaded configuration from {config_path}")
        return cls(**config_data)

    def to_file(self, config_path: str | Path) -> None:
        """Save configuration to a JSON file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(), f, indent=2)
