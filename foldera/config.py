"""
Centralized Configuration System
Environment-aware settings for the conflict detection core.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )
    """
    Production-grade configuration management.
    Loads from environment variables with sensible defaults.
    """

    # ============================================
    # OPENAI CONFIGURATION
    # ============================================
    openai_api_key: str | None = None

    # ============================================
    # CONFLICT DETECTION (LLM path)
    # ============================================
    enable_llm_conflict_detection: bool = True
    conflict_model: str = "openai:gpt-4o"
    conflict_temperature: float = 0.2
    conflict_max_tokens: int = 1000
    conflict_prompt: str = "conflict-detection"
    prompt_field_max_length: int = 200  # Per-field cap when embedding signal text

    # ============================================
    # RESILIENCE (owned by the completion client)
    # ============================================
    max_retries: int = 3
    retry_min_wait_seconds: int = 2
    retry_max_wait_seconds: int = 10
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_recovery_timeout: float = 60.0
    circuit_breaker_half_open_max_calls: int = 1

    # ============================================
    # LOGGING
    # ============================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    enable_structured_logging: bool = False  # Set to True for production JSON logs

    # ============================================
    # ENVIRONMENT
    # ============================================
    environment: Literal["development", "test", "staging", "production"] = "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Singleton pattern for settings.
    Uses LRU cache to ensure only one Settings instance exists.
    """
    return Settings()
