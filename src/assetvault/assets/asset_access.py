"""Resolve committed assets for serving, enforcing collection authorization."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

from ..exceptions import AccessDeniedError, NotFoundError
from ..policies.collection_policy import AuthorizablePolicy, CollectionRegistry
from ..repositories.interfaces import AssetRecordStore
from ..security.temp_url_tokens import TemporaryUrlSigner
from .asset_models import Asset

logger = structlog.get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(slots=True, frozen=True)
class AssetFile:
    """A file ready to be streamed to a client."""

    path: Path
    download_name: str
    mime_type: str
    size: int
    modified_at: datetime


class AssetAccessService:
    """Load an asset or one of its variants and check the caller may read it.

    Collections inheriting :class:`AuthorizablePolicy` are asked through
    ``authorize(asset, principal)``; all other collections are open. Assets
    of a protected collection that is no longer registered are refused.
    """

    def __init__(
        self,
        record_store: AssetRecordStore,
        registry: CollectionRegistry,
        signer: TemporaryUrlSigner | None = None,
    ) -> None:
        self._record_store = record_store
        self._registry = registry
        self._signer = signer

    def has_access_permission(self, asset: Asset, principal: Any = None) -> bool:
        if asset.collection not in self._registry:
            if asset.is_protected:
                logger.warning(
                    "asset.access.unknown_collection",
                    asset_id=asset.id,
                    collection=asset.collection,
                )
                return False
            return True
        policy = self._registry.resolve(asset.collection)
        if not isinstance(policy, AuthorizablePolicy):
            return True
        return bool(policy.authorize(asset, principal))

    def handle_asset_request(
        self,
        asset_id: int,
        variant_name: str | None = None,
        *,
        principal: Any = None,
    ) -> AssetFile:
        asset = self._find(asset_id)
        if not self.has_access_permission(asset, principal):
            logger.info("asset.access.denied", asset_id=asset_id)
            raise AccessDeniedError(f"access to asset {asset_id} is not allowed")
        return self._resolve_file(asset, variant_name)

    def handle_temporary_asset_request(self, token: str) -> AssetFile:
        """Serve the file a temporary URL token grants; the token itself is the authorization."""
        grant = self._signer.validate_token(token) if self._signer is not None else None
        if grant is None:
            raise AccessDeniedError("temporary URL token is invalid or has expired")
        return self._resolve_file(self._find(grant.asset_id), grant.variant)

    def _find(self, asset_id: int) -> Asset:
        asset = self._record_store.find(asset_id)
        if asset is None:
            raise NotFoundError(f"asset {asset_id} not found")
        return asset

    @staticmethod
    def _resolve_file(asset: Asset, variant_name: str | None) -> AssetFile:
        path = asset.path
        download_name = asset.file_name
        mime_type = asset.mime_type
        if variant_name:
            variant = asset.metadata.get_variant(variant_name)
            if variant is None:
                raise NotFoundError(f"variant '{variant_name}' of asset {asset.id} not found")
            path = variant.path
            stem = Path(asset.file_name).stem
            download_name = f"{stem}-{variant_name}.{variant.extension}" if variant.extension else variant.file_name
            mime_type = mimetypes.guess_type(variant.file_name)[0] or DEFAULT_MIME_TYPE

        try:
            stat = path.stat()
        except OSError as exc:
            raise NotFoundError(f"file of asset {asset.id} is missing") from exc
        if not path.is_file():
            raise NotFoundError(f"file of asset {asset.id} is missing")
        return AssetFile(
            path=path,
            download_name=download_name,
            mime_type=mime_type,
            size=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )


__all__ = ["AssetAccessService", "AssetFile"]
