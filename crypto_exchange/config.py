"""Configuration management for the cross-exchange order allocator."""

import os
from pathlib import Path
from typing import Optional
import yaml
from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Storage configuration."""
    db_path: str = "crypto_exchange.sqlite"


class SeedConfig(BaseModel):
    """Seed data configuration."""
    directory: str = "seed_data"
    pattern: str = "*.json"
    seed_on_startup: bool = True


class AllocatorConfig(BaseModel):
    """Allocation configuration."""
    amount_decimals: Optional[int] = Field(default=None, ge=0)  # optional fill unit for fund-bounded sells
    log_executions: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    log_file: Optional[str] = None
    file_level: str = "DEBUG"


class Config(BaseModel):
    """Main configuration model."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    seed: SeedConfig = Field(default_factory=SeedConfig)
    allocator: AllocatorConfig = Field(default_factory=AllocatorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r") as f:
            config_str = f.read()

        # Substitute environment variables
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)

        config_data = yaml.safe_load(config_str) or {}
        return cls(**config_data)


def get_config(config_path: Optional[str] = "config.yaml") -> Config:
    """Get configuration instance, falling back to defaults when no file exists."""
    if config_path is None or not Path(config_path).exists():
        return Config()
    return Config.load_from_file(config_path)
