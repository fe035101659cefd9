"""Database models and utilities for the asset record store."""

from .db_init import init_db
from .db_models import AssetModel, Base

__all__ = ["AssetModel", "Base", "init_db"]
