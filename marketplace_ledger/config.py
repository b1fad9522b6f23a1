"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerConfig(BaseSettings):
    """Marketplace ledger configuration"""
    
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        case_sensitive=False
    )
    
    # Database configuration
    database_url: str = "sqlite:///marketplace_ledger.db"  # memory://, sqlite:///path, postgresql://...
    database_timeout: float = 30.0  # Seconds to wait on a locked SQLite database
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr
    
    # Business rules configuration
    deposit_cap_ratio: Decimal = Decimal("0.25")  # Share of outstanding jobs a client may deposit
    best_clients_default_limit: int = 2


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
