#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
caching layer. All configuration is centralized here so the Redis client,
the cache service and the pipeline behaviors read the same values.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Hot reload through reload_settings(); readers call get_settings() per use
"""

import re
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION_PATTERN = re.compile(r"^v\d")


def _validate_version_format(value: str, field_name: str) -> str:
    """Versions look like 'v1', 'v2', 'v10-beta'."""
    if not VERSION_PATTERN.match(value):
        raise ValueError(
            f"{field_name} must be in the format 'v' followed by a number (e.g., 'v1')"
        )
    return value


class RedisSettings(BaseSettings):
    """
    Redis configuration for the distributed cache store.

    STAGE-0.1: Redis connection configuration
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")

    REDIS_MAX_CONNECTIONS: int = Field(default=200, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_CONNECT_RETRIES: int = Field(default=3, description="Connection attempts before giving up")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Caching configuration: versioning, TTLs and compression.

    STAGE-2: Cache configuration

    Version precedence (highest first):
        1. Explicit version carried by the request's cache policy
        2. CACHE_FEATURE_VERSIONS[feature]
        3. CACHE_GLOBAL_VERSION

    Bumping a version orphans every entry written under the old one; those
    entries stay in Redis until their TTL expires.
    """

    CACHE_GLOBAL_VERSION: str = Field(default="v1", description="Global cache version")
    CACHE_FEATURE_VERSIONS: dict[str, str] = Field(
        default_factory=dict,
        description='Per-feature versions, e.g. {"todos": "v2"}',
    )
    CACHE_DEFAULT_TTL: int = Field(default=300, description="Default entry TTL in seconds (5 minutes)")
    CACHE_ENABLE_COMPRESSION: bool = Field(default=False, description="Compress entries by default")
    CACHE_COMPRESSION_THRESHOLD_BYTES: int = Field(
        default=1024,
        description="Minimum payload size before compression is applied",
    )
    CACHE_SERIALIZER: Literal["json", "msgpack"] = Field(
        default="json",
        description="Payload format for cached entries",
    )

    @field_validator("CACHE_GLOBAL_VERSION")
    @classmethod
    def validate_global_version(cls, v):
        """Validate global version format."""
        return _validate_version_format(v, "CACHE_GLOBAL_VERSION")

    @field_validator("CACHE_FEATURE_VERSIONS")
    @classmethod
    def validate_feature_versions(cls, v):
        """Validate feature names and their version format."""
        for feature, version in v.items():
            if not feature or not feature.strip():
                raise ValueError("CACHE_FEATURE_VERSIONS contains an empty or whitespace key")
            _validate_version_format(version, f"CACHE_FEATURE_VERSIONS['{feature}']")
        return v

    @field_validator("CACHE_DEFAULT_TTL", "CACHE_COMPRESSION_THRESHOLD_BYTES")
    @classmethod
    def validate_positive(cls, v, info):
        """TTL and threshold must be strictly positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return v

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Pipeline Cache", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from pipeline_cache.core.config import get_settings

        settings = get_settings()
        redis_host = settings.redis.REDIS_HOST
        global_version = settings.cache.CACHE_GLOBAL_VERSION
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=200, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_CONNECT_RETRIES: int = Field(default=3, description="Connection attempts before giving up")

    # Cache settings
    CACHE_GLOBAL_VERSION: str = Field(default="v1", description="Global cache version")
    CACHE_FEATURE_VERSIONS: dict[str, str] = Field(
        default_factory=dict,
        description='Per-feature versions, e.g. {"todos": "v2"}',
    )
    CACHE_DEFAULT_TTL: int = Field(default=300, description="Default entry TTL in seconds (5 minutes)")
    CACHE_ENABLE_COMPRESSION: bool = Field(default=False, description="Compress entries by default")
    CACHE_COMPRESSION_THRESHOLD_BYTES: int = Field(
        default=1024,
        description="Minimum payload size before compression is applied",
    )
    CACHE_SERIALIZER: Literal["json", "msgpack"] = Field(
        default="json",
        description="Payload format for cached entries",
    )

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="Pipeline Cache", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_cache_section(self):
        """Run the cache section validators at startup so misconfiguration fails fast."""
        _ = self.cache
        return self

    # Nested configuration views
    @property
    def redis(self) -> "RedisSettings":
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_CONNECT_RETRIES=self.REDIS_CONNECT_RETRIES,
        )

    @property
    def cache(self) -> "CacheSettings":
        """Get cache settings."""
        return CacheSettings(
            CACHE_GLOBAL_VERSION=self.CACHE_GLOBAL_VERSION,
            CACHE_FEATURE_VERSIONS=self.CACHE_FEATURE_VERSIONS,
            CACHE_DEFAULT_TTL=self.CACHE_DEFAULT_TTL,
            CACHE_ENABLE_COMPRESSION=self.CACHE_ENABLE_COMPRESSION,
            CACHE_COMPRESSION_THRESHOLD_BYTES=self.CACHE_COMPRESSION_THRESHOLD_BYTES,
            CACHE_SERIALIZER=self.CACHE_SERIALIZER,
        )

    @property
    def logging(self) -> "LoggingSettings":
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT,
        )

    @property
    def app(self) -> "ApplicationSettings":
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from the environment.

    Components that read get_settings() per call (the version resolver,
    the cache service defaults) pick the new values up immediately.

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
