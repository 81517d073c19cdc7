"""
Pydantic settings for activity-sense
"""

from typing import Any, Dict, List, Optional
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application settings
    app_name: str = Field(default="activity-sense", description="Application name")
    version: str = Field(default="0.3.0", description="Application version")
    environment: str = Field(default="development", description="Environment (development, staging, production, testing)")
    debug: bool = Field(default=False, description="Debug mode")

    # Sampling and window settings
    sample_rate_hz: float = Field(default=20.0, description="Expected sensor sampling rate in Hz")
    window_seconds: float = Field(default=5.0, description="Sliding window length in seconds")
    min_fill_ratio: float = Field(default=0.4, description="Fraction of the window required before classifying")

    # Classification settings
    tick_interval: float = Field(default=2.0, description="Seconds between classification ticks")
    classify_timeout: Optional[float] = Field(default=None, description="Backend call timeout in seconds (defaults to tick interval)")
    backend: str = Field(default="gemini", description="Classification backend (gemini, heuristic)")
    ai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AI_API_KEY", "API_KEY", "ai_api_key"),
        description="API key for the remote classification backend",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model name")
    gemini_base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta", description="Gemini API root URL")

    # Heuristic backend settings
    heuristic_still_threshold: float = Field(default=0.5, description="Accelerometer std norm below which the device is still (m/s^2)")
    heuristic_run_threshold: float = Field(default=6.0, description="Accelerometer std norm at which motion counts as running (m/s^2)")
    heuristic_phone_rotation_threshold: float = Field(default=60.0, description="Gyroscope std norm indicating hand-held phone use (deg/s)")
    heuristic_switch_margin: float = Field(default=0.3, description="Evidence margin needed to leave the previous activity")

    # Source settings
    source: str = Field(default="simulated", description="Motion source (simulated, udp)")
    udp_host: str = Field(default="0.0.0.0", description="UDP bind address for motion events")
    udp_port: int = Field(default=5005, description="UDP port for motion events")
    simulation_seed: int = Field(default=42, description="Seed for the simulated source")
    simulation_profile: str = Field(default="walking", description="Simulated motion profile (still, walking, running)")

    # Broadcast / recorder settings
    ws_host: str = Field(default="localhost", description="WebSocket server host")
    ws_port: int = Field(default=8765, description="WebSocket server port")
    display_interval: float = Field(default=0.5, description="Seconds between live sensor broadcasts")
    recorder_interval: float = Field(default=1.0, description="Seconds between recorded labeled feature vectors")

    # Logging settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10485760, description="Max log file size in bytes (10MB)")
    log_backup_count: int = Field(default=5, description="Number of log backup files")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_environments = ["development", "staging", "production", "testing"]
        if v not in allowed_environments:
            raise ValueError(f"Environment must be one of: {allowed_environments}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level setting."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v):
        """Validate classification backend."""
        allowed_backends = ["gemini", "heuristic"]
        if v.lower() not in allowed_backends:
            raise ValueError(f"Backend must be one of: {allowed_backends}")
        return v.lower()

    @field_validator("source")
    @classmethod
    def validate_source(cls, v):
        """Validate motion source."""
        allowed_sources = ["simulated", "udp"]
        if v.lower() not in allowed_sources:
            raise ValueError(f"Source must be one of: {allowed_sources}")
        return v.lower()

    @field_validator("simulation_profile")
    @classmethod
    def validate_simulation_profile(cls, v):
        """Validate simulated motion profile."""
        allowed_profiles = ["still", "walking", "running"]
        if v not in allowed_profiles:
            raise ValueError(f"Simulation profile must be one of: {allowed_profiles}")
        return v

    @field_validator("min_fill_ratio")
    @classmethod
    def validate_min_fill_ratio(cls, v):
        """Validate window fill ratio."""
        if not 0.0 < v <= 1.0:
            raise ValueError("Minimum fill ratio must be in (0, 1]")
        return v

    @field_validator(
        "sample_rate_hz", "window_seconds", "tick_interval",
        "display_interval", "recorder_interval",
    )
    @classmethod
    def validate_positive(cls, v):
        """Validate rates and intervals."""
        if v <= 0:
            raise ValueError("Rates and intervals must be positive")
        return v

    @field_validator("classify_timeout")
    @classmethod
    def validate_classify_timeout(cls, v):
        """Validate backend timeout."""
        if v is not None and v <= 0:
            raise ValueError("Classification timeout must be positive")
        return v

    @field_validator("udp_port", "ws_port")
    @classmethod
    def validate_port(cls, v):
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def window_capacity(self) -> int:
        """Sliding window capacity in samples."""
        return max(1, round(self.sample_rate_hz * self.window_seconds))

    def get_public_config(self) -> Dict[str, Any]:
        """Get configuration without secrets."""
        return {
            "app_name": self.app_name,
            "version": self.version,
            "environment": self.environment,
            "debug": self.debug,
            "sample_rate_hz": self.sample_rate_hz,
            "window_seconds": self.window_seconds,
            "window_capacity": self.window_capacity,
            "min_fill_ratio": self.min_fill_ratio,
            "tick_interval": self.tick_interval,
            "classify_timeout": self.classify_timeout,
            "backend": self.backend,
            "api_key_configured": bool(self.ai_api_key),
            "gemini_model": self.gemini_model,
            "source": self.source,
            "udp": f"{self.udp_host}:{self.udp_port}",
            "simulation_profile": self.simulation_profile,
            "websocket": f"ws://{self.ws_host}:{self.ws_port}",
            "log_level": self.log_level,
            "log_file": self.log_file,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_test_settings() -> Settings:
    """Get settings for testing."""
    return Settings(
        environment="testing",
        debug=True,
        backend="heuristic",
        tick_interval=0.05,
        log_level="DEBUG"
    )


def load_settings_from_file(file_path: str) -> Settings:
    """Load settings from a specific file."""
    return Settings(_env_file=file_path)


def validate_settings(settings: Settings) -> List[str]:
    """Validate settings and return list of issues."""
    issues = []

    if settings.backend == "gemini" and not settings.ai_api_key:
        issues.append("Gemini backend selected but AI_API_KEY / API_KEY is not set")

    timeout = settings.classify_timeout or settings.tick_interval
    if timeout > settings.tick_interval:
        issues.append(
            f"Classification timeout ({timeout}s) exceeds the tick interval "
            f"({settings.tick_interval}s); ticks will be dropped while a call is pending"
        )

    min_samples = settings.window_capacity * settings.min_fill_ratio
    if min_samples < 2:
        issues.append(
            f"Window warms up after {min_samples:.1f} samples; "
            f"standard deviations will be meaningless"
        )

    if settings.is_production and settings.debug:
        issues.append("Debug mode should be disabled in production")

    return issues
