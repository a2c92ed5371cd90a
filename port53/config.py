"""
Configuration management for port53
Supports environment variables and .env files
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Settings
    api_title: str = "port53"
    api_description: str = "JSON:API service for DNS backends, zones and records"
    api_version: str = "1.0.0"
    api_prefix: str = "/v1"
    debug: bool = False

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 9023
    workers: int = 4
    service_url: str = Field(
        default="http://localhost:9023",
        description="Public base URL used to build Location headers"
    )

    # Database
    database_url: str = "sqlite+aiosqlite:////tmp/port53.db"
    database_echo: bool = False

    # Pagination
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=1000, ge=1)

    # Logging
    log_level: str = "DEBUG"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    audit_log_enabled: bool = True
    audit_log_database: bool = Field(
        default=False,
        description="Persist audit entries to the audit_logs table as well as the log"
    )

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_period: int = 60  # seconds

    # CORS
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Prometheus Metrics
    metrics_enabled: bool = True
    metrics_path: str = "/metrics"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_prefix = "PORT53_"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Convenience function
settings = get_settings()
