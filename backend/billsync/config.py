"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "BillSync"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/billsync.sqlite"

    # Banking provider (Basiq)
    basiq_api_key: str = ""
    basiq_api_url: str = "https://au-api.basiq.io"
    basiq_version: str = "3.0"
    basiq_token_ttl_seconds: int = 50 * 60  # Tokens last 60 minutes
    basiq_timeout_seconds: float = 30.0

    # Sync windows
    sync_window_days: int = 90
    summary_window_days: int = 30

    # AI Provider
    ai_provider: str = "gemini"  # gemini, openrouter, ollama
    ai_model: str = "gemini-1.5-flash"
    ai_base_url: Optional[str] = None  # For Ollama: http://localhost:11434

    # API Keys (optional based on provider)
    gemini_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None

    # Recommendations
    recommendation_ttl_hours: int = 24
    insights_period_days: int = 14

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Global settings instance
settings = Settings()
