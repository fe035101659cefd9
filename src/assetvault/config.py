"""Application configuration builder.

Settings are read from ``ASSETVAULT_*`` environment variables. Public assets
live under ``public_root`` (directly servable), protected assets under
``protected_root`` and staged uploads under ``pending_root``.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db

TokenBackend = Literal["none", "cookie", "session", "request"]

WEEK_SECONDS = 7 * 24 * 60 * 60


class AssetSettings(BaseSettings):
    """Pydantic settings container for the asset services."""

    model_config = SettingsConfigDict(env_prefix="ASSETVAULT_")

    database_url: str = Field(
        default="sqlite:///assetvault.db",
        description="SQLAlchemy URL of the asset record store.",
    )
    public_root: Path = Field(
        default=Path("./var/public"),
        description="Filesystem root for directly servable assets.",
    )
    protected_root: Path = Field(
        default=Path("./var/protected"),
        description="Filesystem root for assets behind an authorization check.",
    )
    pending_root: Path = Field(
        default=Path("./var/pending"),
        description="Filesystem root of the pending staging area.",
    )
    pending_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        ge=1,
        description="Default time-to-live of staged pending assets.",
    )
    token_backend: TokenBackend = Field(
        default="cookie",
        description="Where pending possession tokens are kept.",
    )
    token_ttl_seconds: int = Field(default=WEEK_SECONDS, ge=1)
    token_length: int = Field(default=16, ge=1, le=64, description="Random bytes per token.")
    token_cookie_name: str = Field(default="__asset_pending_security_token_")
    token_session_prefix: str = Field(default="__pending_security_token_")
    token_header: str = Field(default="X-Pending-Token")
    token_field: str = Field(default="pending_token")
    queue_name: str = Field(default="asset_queue")
    queue_job_handler: str = Field(default="asset_variants")
    purge_batch_size: int = Field(
        default=1_000,
        ge=1,
        description="Maximum tombstoned assets purged per sweep.",
    )
    public_url_prefix: str = Field(
        default="/media",
        description="URL prefix under which the public root is served.",
    )
    url_signing_key: str = Field(
        default_factory=lambda: secrets.token_hex(32),
        description="HMAC key of temporary asset URLs; random per process unless set.",
    )
    temporary_url_ttl_seconds: int = Field(default=60 * 60, ge=1)
    log_level: str = Field(default="INFO")


@dataclass(slots=True)
class StoragePaths:
    public: Path
    protected: Path
    pending: Path


@dataclass(slots=True)
class AppConfig:
    settings: AssetSettings
    storage_paths: StoragePaths
    engine: Engine
    session_factory: sessionmaker[Session]


def _ensure_storage_paths(paths: StoragePaths) -> None:
    paths.public.mkdir(parents=True, exist_ok=True)
    paths.protected.mkdir(parents=True, exist_ok=True)
    paths.pending.mkdir(parents=True, exist_ok=True)


def load_config(settings: AssetSettings | None = None) -> AppConfig:
    """Load configuration from environment and initialise the record store."""
    settings = settings or AssetSettings()
    storage_paths = StoragePaths(
        public=settings.public_root,
        protected=settings.protected_root,
        pending=settings.pending_root,
    )
    _ensure_storage_paths(storage_paths)

    engine = create_engine(settings.database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)

    return AppConfig(
        settings=settings,
        storage_paths=storage_paths,
        engine=engine,
        session_factory=session_factory,
    )
