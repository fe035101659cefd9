"""Pending staging area for assets without an owner yet."""

from .pending_manager import PendingAssetManager
from .pending_models import PendingAsset
from .pending_storage import FilesystemPendingStorage, PendingStorage

__all__ = ["FilesystemPendingStorage", "PendingAsset", "PendingAssetManager", "PendingStorage"]
