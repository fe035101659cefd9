"""Record store implementations and collaborator interfaces."""

from .asset_repository import AssetRepository
from .interfaces import AssetOwner, AssetRecordStore, JobQueue, SaveResult

__all__ = ["AssetOwner", "AssetRecordStore", "AssetRepository", "JobQueue", "SaveResult"]
