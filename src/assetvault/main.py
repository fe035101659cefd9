"""FastAPI application entry point.

Run with ``uvicorn src.assetvault.main:create_app --factory``.
"""

from __future__ import annotations

from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import include_routers
from .events import EventDispatcher
from .logging import configure_logging
from .policies.collection_policy import CollectionRegistry
from .repositories.interfaces import JobQueue


def create_app(
    config: AppConfig | None = None,
    queue: JobQueue | None = None,
    *,
    registry: CollectionRegistry | None = None,
    events: EventDispatcher | None = None,
) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    cfg = config or load_config()
    configure_logging(cfg.settings.log_level.upper())
    app = FastAPI(title="assetvault")
    include_routers(app, cfg, queue, registry=registry, events=events)
    return app
