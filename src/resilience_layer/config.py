"""
Configuration settings for the resilience layer.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development. Durations are in seconds.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from resilience_layer.breaker.state import CircuitBreakerPolicy
from resilience_layer.reporting.throttle import ThrottleConfig
from resilience_layer.retry.policy import RetryPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "resilience-layer"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Response Cache ===
    CACHE_DEFAULT_TTL: float = 300.0  # 5 minutes
    CACHE_MAX_SIZE: int = 100
    CACHE_SWEEP_INTERVAL: float = 300.0  # Periodic expired-entry sweep

    # === Retry ===
    RETRY_MAX_RETRIES: int = 3
    RETRY_BASE_DELAY: float = 1.0
    RETRY_MAX_DELAY: float = 10.0
    RETRY_EXPONENTIAL: bool = True
    RETRY_JITTER_ENABLED: bool = True
    RETRY_JITTER_FACTOR: float = 0.1  # +/-10% of the raw delay

    # === Circuit Breaker ===
    BREAKER_FAILURE_THRESHOLD: int = 5
    BREAKER_RESET_TIMEOUT: float = 60.0  # 1 minute
    BREAKER_MONITORING_PERIOD: float = 300.0  # 5 minutes
    BREAKER_HALF_OPEN_MAX_PROBES: int = 1

    # === Error Reporting ===
    ERROR_MAX_RECORDS: int = 50
    ERROR_THROTTLE_WINDOW: float = 60.0
    ERROR_MAX_PER_WINDOW: int = 30
    ERROR_MAX_SAME_PER_WINDOW: int = 5

    def retry_policy(self) -> RetryPolicy:
        """Build the default retry policy from settings."""
        return RetryPolicy(
            max_retries=self.RETRY_MAX_RETRIES,
            base_delay=self.RETRY_BASE_DELAY,
            max_delay=self.RETRY_MAX_DELAY,
            exponential=self.RETRY_EXPONENTIAL,
            jitter_enabled=self.RETRY_JITTER_ENABLED,
            jitter_factor=self.RETRY_JITTER_FACTOR,
        )

    def breaker_policy(self) -> CircuitBreakerPolicy:
        """Build the default circuit breaker policy from settings."""
        return CircuitBreakerPolicy(
            failure_threshold=self.BREAKER_FAILURE_THRESHOLD,
            reset_timeout=self.BREAKER_RESET_TIMEOUT,
            monitoring_period=self.BREAKER_MONITORING_PERIOD,
            half_open_max_probes=self.BREAKER_HALF_OPEN_MAX_PROBES,
        )

    def throttle_config(self) -> ThrottleConfig:
        """Build the error throttling configuration from settings."""
        return ThrottleConfig(
            window_seconds=self.ERROR_THROTTLE_WINDOW,
            max_errors_per_window=self.ERROR_MAX_PER_WINDOW,
            max_same_errors_per_window=self.ERROR_MAX_SAME_PER_WINDOW,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings for the process boundary.

    Returns:
        Settings instance (created once)
    """
    return Settings()
