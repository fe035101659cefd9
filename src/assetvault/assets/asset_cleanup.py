"""Physical cleanup of tombstoned assets."""

from __future__ import annotations

import logging
from pathlib import Path

from ..repositories.interfaces import AssetRecordStore
from ..storage.path_generator import remove_storage_path
from .asset_models import Asset

logger = logging.getLogger(__name__)


def _asset_directory(asset: Asset) -> Path | None:
    """Per-asset directory, or ``None`` when it is not below the storage base."""
    base = asset.metadata.basic_info.storage_base_directory_path
    directory = asset.directory
    if not base:
        return None
    base_path = Path(base)
    if directory == base_path or base_path not in directory.parents:
        return None
    return directory


def remove_asset_files(asset: Asset) -> None:
    """Remove the variants of ``asset``, then its file and directory."""
    for variant in asset.metadata.variants.values():
        remove_storage_path(variant.path)
    directory = _asset_directory(asset)
    if directory is None:
        remove_storage_path(asset.path)
    else:
        remove_storage_path(directory)


def purge_deleted_assets(record_store: AssetRecordStore, limit: int = 1_000) -> int:
    """Delete files and records of tombstoned assets, returning the purged count."""
    purged = 0
    for asset in record_store.find_deleted(limit):
        try:
            remove_asset_files(asset)
            record_store.delete(asset.id, purge=True)
        except Exception as exc:
            logger.error(
                "asset.cleanup.failed",
                extra={"asset_id": asset.id, "error": str(exc)},
            )
            continue
        purged += 1
        logger.info(
            "asset.cleanup.removed",
            extra={"asset_id": asset.id, "path": str(asset.path)},
        )
    return purged
