"""Cron entry point purging evicted assets and expired pending uploads."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass

from src.assetvault.assets.asset_cleanup import purge_deleted_assets
from src.assetvault.config import load_config
from src.assetvault.logging import configure_logging
from src.assetvault.pending.pending_storage import FilesystemPendingStorage
from src.assetvault.repositories.asset_repository import AssetRepository


@dataclass(slots=True)
class CleanupSummary:
    assets_purged: int
    pending_removed: int
    dry_run: bool


def perform_cleanup(*, dry_run: bool, limit: int | None = None) -> CleanupSummary:
    """Execute cleanup logic and return summary counters."""
    config = load_config()
    record_store = AssetRepository(config.session_factory)
    pending_storage = FilesystemPendingStorage(
        root=config.storage_paths.pending,
        default_ttl_seconds=config.settings.pending_ttl_seconds,
    )
    batch = limit or config.settings.purge_batch_size

    if dry_run:
        deleted = record_store.find_deleted(batch)
        expired = pending_storage.expired_ids()
        return CleanupSummary(assets_purged=len(deleted), pending_removed=len(expired), dry_run=True)

    purged = purge_deleted_assets(record_store, batch)
    removed = pending_storage.clean_expired_pending_assets()
    return CleanupSummary(assets_purged=purged, pending_removed=removed, dry_run=False)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Purge evicted assets and expired pending uploads.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without deleting files.")
    parser.add_argument("--limit", type=int, default=None, help="Maximum tombstoned assets to purge.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    try:
        summary = perform_cleanup(dry_run=args.dry_run, limit=args.limit)
    except Exception as exc:
        print(f"cleanup failed: {exc}", file=sys.stderr)
        return 2

    if summary.dry_run:
        print(
            f"cleanup dry-run, assets_deleted={summary.assets_purged}, pending_expired={summary.pending_removed}",
            file=sys.stdout,
        )
    else:
        print(
            f"cleanup done, assets_purged={summary.assets_purged}, pending_removed={summary.pending_removed}",
            file=sys.stdout,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
