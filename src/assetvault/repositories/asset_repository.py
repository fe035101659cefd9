"""Persistence layer for asset records."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..assets.asset_models import Asset, AssetMetadata, RetentionScope, utcnow
from ..db.db_models import AssetModel
from ..exceptions import handle_sqlalchemy_errors
from .interfaces import SaveResult

_MAX_LENGTHS = {
    "name": 255,
    "file_name": 255,
    "mime_type": 255,
    "path": 1020,
    "collection": 32,
    "owner_kind": 32,
}


class AssetRepository:
    """Store asset records through SQLAlchemy sessions."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def save(self, asset: Asset) -> SaveResult:
        errors = self.validate(asset)
        if errors:
            return SaveResult(errors=errors)

        now = utcnow()
        with handle_sqlalchemy_errors(entity="asset"), self._session_factory() as session:
            model = session.get(AssetModel, asset.id) if asset.id else None
            if model is None:
                model = AssetModel(created_at=asset.created_at or now)
                session.add(model)
            self._apply(model, asset)
            model.updated_at = now
            session.commit()
            asset.id = model.id
            asset.created_at = model.created_at
            asset.updated_at = model.updated_at
        return SaveResult(id=asset.id)

    def find(self, asset_id: int, *, with_deleted: bool = False) -> Asset | None:
        with self._session_factory() as session:
            model = session.get(AssetModel, asset_id)
            if model is None:
                return None
            if model.deleted_at is not None and not with_deleted:
                return None
            return self._to_domain(model)

    def delete(self, asset_id: int, *, purge: bool = False) -> None:
        with handle_sqlalchemy_errors(entity="asset"), self._session_factory() as session:
            model = session.get(AssetModel, asset_id)
            if model is None:
                return
            if purge:
                session.delete(model)
            else:
                model.deleted_at = utcnow()
            session.commit()

    def find_ids_in_scope(
        self, scope: RetentionScope, *, offset: int = 0, limit: int | None = None
    ) -> list[int]:
        stmt = (
            select(AssetModel.id)
            .where(
                AssetModel.collection == scope.collection,
                AssetModel.owner_kind == scope.owner_kind,
                AssetModel.owner_id == scope.owner_id,
                AssetModel.deleted_at.is_(None),
            )
            .order_by(AssetModel.created_at.desc(), AssetModel.id.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def soft_delete_many(self, asset_ids: Sequence[int]) -> int:
        if not asset_ids:
            return 0
        with handle_sqlalchemy_errors(entity="asset"), self._session_factory() as session:
            result = session.execute(
                update(AssetModel)
                .where(AssetModel.id.in_(list(asset_ids)), AssetModel.deleted_at.is_(None))
                .values(deleted_at=utcnow())
            )
            session.commit()
            return result.rowcount or 0

    def find_deleted(self, limit: int) -> list[Asset]:
        stmt = (
            select(AssetModel)
            .where(AssetModel.deleted_at.is_not(None))
            .order_by(AssetModel.deleted_at)
            .limit(limit)
        )
        with self._session_factory() as session:
            return [self._to_domain(row) for row in session.scalars(stmt)]

    @staticmethod
    def validate(asset: Asset) -> list[str]:
        errors: list[str] = []
        for attribute, max_length in _MAX_LENGTHS.items():
            value = str(getattr(asset, attribute) or "")
            if not value:
                errors.append(f"The {attribute} field is required.")
            elif len(value) > max_length:
                errors.append(f"The {attribute} field cannot exceed {max_length} characters.")
        if asset.size < 0:
            errors.append("The size field must be a non-negative integer.")
        if asset.order < 0:
            errors.append("The order field must be a non-negative integer.")
        return errors

    @staticmethod
    def _apply(model: AssetModel, asset: Asset) -> None:
        model.owner_kind = asset.owner_kind
        model.owner_id = asset.owner_id
        model.collection = asset.collection
        model.name = asset.name
        model.file_name = asset.file_name
        model.mime_type = asset.mime_type
        model.size = asset.size
        model.path = str(asset.path)
        model.order = asset.order
        model.metadata_json = json.dumps(asset.metadata.to_dict())

    @staticmethod
    def _to_domain(model: AssetModel) -> Asset:
        metadata = json.loads(model.metadata_json) if model.metadata_json else None
        return Asset(
            id=model.id,
            collection=model.collection,
            owner_kind=model.owner_kind,
            owner_id=model.owner_id,
            name=model.name,
            file_name=model.file_name,
            mime_type=model.mime_type,
            size=model.size,
            path=Path(model.path),
            order=model.order,
            metadata=AssetMetadata.from_dict(metadata),
            created_at=model.created_at,
            updated_at=model.updated_at,
            deleted_at=model.deleted_at,
        )
