"""Collaborator interfaces used by the asset pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from ..assets.asset_models import Asset, RetentionScope


@dataclass(slots=True)
class SaveResult:
    """Outcome of :meth:`AssetRecordStore.save`; ``errors`` is empty on success."""

    id: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.id > 0


class AssetRecordStore(Protocol):
    """Persistence operations for descriptive asset records."""

    def save(self, asset: Asset) -> SaveResult:
        """Insert a new record or update the one with ``asset.id``."""

    def find(self, asset_id: int, *, with_deleted: bool = False) -> Asset | None:
        """Return a record by identifier, skipping tombstones by default."""

    def delete(self, asset_id: int, *, purge: bool = False) -> None:
        """Tombstone a record, or remove it physically when ``purge`` is set."""

    def find_ids_in_scope(
        self, scope: RetentionScope, *, offset: int = 0, limit: int | None = None
    ) -> list[int]:
        """Return live record ids of ``scope`` ordered newest first."""

    def soft_delete_many(self, asset_ids: Sequence[int]) -> int:
        """Tombstone all ``asset_ids`` in one operation."""

    def find_deleted(self, limit: int) -> list[Asset]:
        """Return tombstoned records awaiting physical cleanup."""


class JobQueue(Protocol):
    """External job runner accepting deferred work."""

    def push(self, queue_name: str, job_handler: str, payload: Mapping[str, Any]) -> bool:
        """Submit a job, returning whether it was accepted."""


class AssetOwner(Protocol):
    """Owning record notified when one of its assets is evicted."""

    def remove_asset_by_id(self, asset_id: int) -> None:
        """Drop cached references to ``asset_id``."""
