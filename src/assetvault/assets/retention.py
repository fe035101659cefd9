"""Retention cap enforcement for asset collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog

from ..events import AssetDeleted, EventDispatcher, dispatch
from ..repositories.interfaces import AssetRecordStore
from .asset_models import RetentionScope

logger = structlog.get_logger(__name__)

RemovalCallback = Callable[[int], None]


@dataclass(slots=True)
class RetentionEvictor:
    """Tombstone the oldest surplus assets of a scope.

    Only records are touched; files of evicted assets are removed later by
    :func:`~src.assetvault.assets.asset_cleanup.purge_deleted_assets`.
    """

    record_store: AssetRecordStore
    events: EventDispatcher | None = None

    def enforce(
        self,
        scope: RetentionScope,
        max_items: int,
        on_removed: RemovalCallback | None = None,
    ) -> list[int]:
        if max_items <= 0:
            return []

        try:
            surplus = self.record_store.find_ids_in_scope(scope, offset=max_items)
            if not surplus:
                return []
            self.record_store.soft_delete_many(surplus)
        except Exception as exc:
            logger.error(
                "asset.retention.failed",
                collection=scope.collection,
                owner_kind=scope.owner_kind,
                owner_id=scope.owner_id,
                error=str(exc),
            )
            return []

        logger.info(
            "asset.retention.evicted",
            collection=scope.collection,
            owner_id=scope.owner_id,
            max_items=max_items,
            removed=surplus,
        )
        for asset_id in surplus:
            dispatch(self.events, AssetDeleted(asset_id))
        if on_removed is not None:
            for asset_id in surplus:
                try:
                    on_removed(asset_id)
                except Exception as exc:
                    logger.warning(
                        "asset.retention.owner_notify_failed",
                        asset_id=asset_id,
                        error=str(exc),
                    )
        return surplus
