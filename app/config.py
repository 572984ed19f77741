"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with .env file support.
"""
import logging
import re
from functools import lru_cache
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Anchor workspace
    WORKSPACE_PATH: str = "./workspace"  # Pre-scaffolded Anchor workspace (must contain Anchor.toml)
    ANCHOR_BINARY: str = "anchor"
    ANCHOR_CLUSTER: str = "localnet"  # Section of Anchor.toml that receives the program id
    ANCHOR_BUILD_TIMEOUT_SECONDS: int = 600
    ANCHOR_TEST_TIMEOUT_SECONDS: int = 900
    ANCHOR_TEST_EXTRA_ARGS: str = ""  # e.g. "--skip-lint"

    @field_validator('WORKSPACE_PATH')
    @classmethod
    def validate_workspace_path(cls, v: str) -> str:
        """Prevent path traversal attacks."""
        if '..' in v:
            raise ValueError('Path traversal not allowed in WORKSPACE_PATH')
        return v

    @field_validator('ANCHOR_CLUSTER')
    @classmethod
    def validate_cluster(cls, v: str) -> str:
        """Cluster name is interpolated into a TOML section header."""
        if not re.fullmatch(r'[A-Za-z0-9_-]+', v):
            raise ValueError('ANCHOR_CLUSTER must only contain letters, digits, "_" or "-"')
        return v

    # Request limits
    MAX_FILES_PER_REQUEST: int = 200
    MAX_FILE_SIZE_BYTES: int = 1_000_000
    CLEANUP_TEST_FILES_AFTER_RUN: bool = True  # Stale test files would otherwise run with the next project

    # Application
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8080"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept level names the logging module knows about."""
        if not isinstance(logging.getLevelName(v.upper()), int):
            raise ValueError(f'Unknown log level: {v}')
        return v

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 30  # Builds are expensive; keep this low

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra='ignore'  # Allow extra fields in .env without validation errors
    )

    @property
    def anchor_test_extra_args(self) -> list[str]:
        """Extra `anchor test` arguments as a list."""
        return self.ANCHOR_TEST_EXTRA_ARGS.split()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.

    Returns:
        Settings instance
    """
    return Settings()
