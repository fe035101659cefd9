"""Deferred variant processing executed by the external job runner."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from ..assets.asset_cleanup import purge_deleted_assets
from ..events import AssetUpdated, EventDispatcher, VariantCreated, dispatch
from ..exceptions import AssetError, NotFoundError, PersistenceError
from ..policies.collection_policy import CollectionRegistry
from ..repositories.interfaces import AssetRecordStore
from ..variants.variant_processor import run_variants

if TYPE_CHECKING:
    from ..pending.pending_manager import PendingAssetManager

logger = structlog.get_logger(__name__)


class AssetVariantsJob:
    """Handle payloads queued by :func:`enqueue_variants`.

    After the variants are written the job also purges tombstoned assets and
    sweeps expired pending entries, so evicted files do not accumulate when
    no cron sweep is scheduled.
    """

    def __init__(
        self,
        *,
        record_store: AssetRecordStore,
        registry: CollectionRegistry,
        pending_manager: "PendingAssetManager | None" = None,
        purge_batch_size: int = 1_000,
        events: EventDispatcher | None = None,
    ) -> None:
        self._record_store = record_store
        self._registry = registry
        self._pending_manager = pending_manager
        self._purge_batch_size = purge_batch_size
        self._events = events

    def process(self, payload: Mapping[str, Any]) -> None:
        try:
            asset_id = int(payload["asset_id"])
            definition = str(payload["definition"])
        except (KeyError, TypeError, ValueError) as exc:
            raise AssetError(f"malformed variant job payload: {dict(payload)!r}") from exc
        arguments = list(payload.get("definition_arguments") or [])

        asset = self._record_store.find(asset_id)
        if asset is None:
            raise NotFoundError(f"asset {asset_id} does not exist")
        policy = self._registry.resolve(definition, *arguments)

        processed = run_variants(asset, policy)
        result = self._record_store.save(asset)
        if result.errors:
            raise PersistenceError(result.errors)
        logger.info(
            "asset.variant.job_done",
            asset_id=asset_id,
            variants=[variant.name for variant in processed],
        )
        for variant in processed:
            dispatch(self._events, VariantCreated(asset_id, asset, variant))
        dispatch(self._events, AssetUpdated(asset_id))
        self.collect_garbage()

    def collect_garbage(self) -> None:
        purged = purge_deleted_assets(self._record_store, self._purge_batch_size)
        expired = 0
        if self._pending_manager is not None:
            expired = self._pending_manager.clean_expired_pending_assets()
        if purged or expired:
            logger.info("asset.gc.completed", purged=purged, pending_expired=expired)

    __call__ = process
