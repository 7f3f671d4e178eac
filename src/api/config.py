"""Configuration management for the emotion timeline service.

This module provides centralized configuration using pydantic-settings,
loading values from environment variables with sensible defaults.

Example:
    >>> from src.api.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.app_name)
    Emotion Timeline Service
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.
    
    All settings can be overridden via environment variables.
    Environment variables use uppercase names matching the attribute names.
    
    Attributes:
        app_name: Name of the application for OpenAPI docs.
        app_version: API version string.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        data_source: Where raw timelines come from ("local" or "vault").
        data_root: Root directory of the local JSON log store.
        vault_base_url: Base URL of the vault proxy API.
        vault_timeout_sec: Timeout for vault proxy requests.
        expected_slots: Slots in a fully covered day (coverage statistics).
        include_corrections_default: Whether to include corrections by default.
        cors_origins: Allowed CORS origins.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Application settings
    app_name: str = "Emotion Timeline Service"
    app_version: str = "1.0.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    
    # Data source settings
    data_source: Literal["local", "vault"] = "local"
    data_root: str = "data_accounts"
    vault_base_url: str = "http://localhost:3001"
    vault_timeout_sec: float = 30.0
    
    # Statistics defaults
    expected_slots: int = 48
    
    # Response defaults
    include_corrections_default: bool = False
    
    # CORS
    cors_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.
    
    Uses lru_cache to ensure settings are only loaded once.
    
    Returns:
        Settings instance with values from environment.
    """
    return Settings()
