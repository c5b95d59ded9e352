"""Runtime configuration schemas."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class StoreBackend(StrEnum):
    """Which Decision Store implementation to open."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class StoreConfig(BaseModel):
    """Decision Store settings."""

    backend: StoreBackend = Field(
        default=StoreBackend.SQLITE, description="Store implementation",
    )
    db_path: str = Field(
        default="~/.dev3/decisions.db",
        description="Path to the SQLite database (sqlite backend only)",
    )


class ServerConfig(BaseModel):
    """HTTP request layer settings."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8430, gt=0, lt=65536, description="Bind port")


class Dev3Config(BaseModel):
    """Top-level configuration.

    Loaded from defaults.toml and overridden by DEV3_* environment variables.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
