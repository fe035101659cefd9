"""Dependency wiring helpers."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .api.assets_api import router as assets_router
from .api.errors import ApiError, api_error_handler, asset_error_handler
from .api.pending_api import router as pending_router
from .assets.asset_access import AssetAccessService
from .assets.asset_pipeline import AssetStorePipeline
from .assets.retention import RetentionEvictor
from .config import AppConfig
from .events import EventDispatcher
from .exceptions import AssetError
from .pending.pending_storage import FilesystemPendingStorage
from .policies.collection_policy import CollectionRegistry
from .repositories.asset_repository import AssetRepository
from .repositories.interfaces import JobQueue
from .security.temp_url_tokens import TemporaryUrlSigner
from .storage.path_generator import DefaultPathLayout
from .storage.url_generator import AssetUrlGenerator


def build_pipeline(
    config: AppConfig,
    queue: JobQueue | None = None,
    events: EventDispatcher | None = None,
) -> AssetStorePipeline:
    """Assemble the store pipeline over the configured record store and roots."""
    record_store = AssetRepository(config.session_factory)
    return AssetStorePipeline(
        record_store=record_store,
        layout=DefaultPathLayout(
            public_root=config.storage_paths.public,
            protected_root=config.storage_paths.protected,
        ),
        evictor=RetentionEvictor(record_store, events),
        queue=queue,
        queue_name=config.settings.queue_name,
        job_handler=config.settings.queue_job_handler,
        events=events,
    )


def build_pending_storage(config: AppConfig) -> FilesystemPendingStorage:
    return FilesystemPendingStorage(
        root=config.storage_paths.pending,
        default_ttl_seconds=config.settings.pending_ttl_seconds,
    )


def build_url_generator(config: AppConfig, signer: TemporaryUrlSigner) -> AssetUrlGenerator:
    return AssetUrlGenerator(signer=signer, public_prefix=config.settings.public_url_prefix)


def include_routers(
    app: FastAPI,
    config: AppConfig,
    queue: JobQueue | None = None,
    *,
    registry: CollectionRegistry | None = None,
    events: EventDispatcher | None = None,
) -> None:
    """Mount module routers and attach services."""
    registry = registry if registry is not None else CollectionRegistry()
    events = events if events is not None else EventDispatcher()
    signer = TemporaryUrlSigner(config.settings.url_signing_key)

    app.state.config = config
    app.state.settings = config.settings
    app.state.registry = registry
    app.state.events = events
    app.state.pending_storage = build_pending_storage(config)
    app.state.pipeline = build_pipeline(config, queue, events)
    app.state.access_service = AssetAccessService(
        AssetRepository(config.session_factory), registry, signer
    )
    app.state.url_generator = build_url_generator(config, signer)

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(AssetError, asset_error_handler)
    app.include_router(pending_router)
    app.include_router(assets_router)
    app.mount(
        config.settings.public_url_prefix,
        StaticFiles(directory=config.storage_paths.public),
        name="public-assets",
    )
