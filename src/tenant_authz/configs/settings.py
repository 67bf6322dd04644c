from __future__ import annotations

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration.

    - Values loaded from `.env`
    - Comma-separated lists for multi-value settings like CORS_ORIGINS
    """

    # ----------------------------
    # Service
    # ----------------------------
    SERVICE_NAME: str = "tenant-authz-service"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ----------------------------
    # Role store
    # ----------------------------
    role_store_backend: Literal["postgrest", "mongo"] = "postgrest"
    role_bindings_table: str = "user_client_roles"
    tenants_table: str = "clientes"

    # PostgREST endpoint in front of the relational store
    postgrest_url: str = "http://localhost:54321"
    postgrest_api_key: str = "change-me"
    postgrest_timeout: float = 10.0

    # Mongo mirror of the same tables
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "dashboard"

    # ----------------------------
    # Tenancy
    # ----------------------------
    TENANT_HEADER: str = "X-Client-Id"
    TENANT_ACTIVE_STATUS: str = "active"

    # ----------------------------
    # JWT
    # ----------------------------
    jwt_alg: str = "HS256"
    jwt_secret: str = "change-me"
    jwt_audience: str | None = "authenticated"
    jwt_issuer: str | None = None

    # ----------------------------
    # CORS
    # ----------------------------
    # store as raw string list from env; we will normalize in code
    CORS_ORIGINS: Any = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
