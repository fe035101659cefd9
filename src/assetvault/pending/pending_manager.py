"""Pending asset manager adding lazy expiration and token binding."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable

import structlog

from .pending_models import PendingAsset
from .pending_storage import PendingStorage

if TYPE_CHECKING:
    from ..security.pending_tokens import PendingSecurityToken

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class PendingAssetManager:
    """Front door to the staging store.

    Expired entries are never returned by :meth:`fetch_by_id`, whether or not
    the periodic sweep has run. When ``security_token`` is set, entries are
    only returned to callers presenting the token recorded at creation.
    """

    storage: PendingStorage
    security_token: "PendingSecurityToken | None" = None
    clock: Callable[[], datetime] = _utcnow

    def with_security_token(self, token: "PendingSecurityToken | None") -> "PendingAssetManager":
        return replace(self, security_token=token)

    def fetch_by_id(self, pending_id: str, token: str | None = None) -> PendingAsset | None:
        asset = self.storage.fetch_by_id(pending_id)
        if asset is None:
            return None
        if self._is_expired(asset):
            try:
                self.storage.delete_by_id(pending_id)
            except Exception as exc:
                logger.warning("pending.expire.delete_failed", pending_id=pending_id, error=str(exc))
            logger.info("pending.expire.lazy", pending_id=pending_id)
            return None
        if self.security_token is not None and not self.security_token.validate_token(asset, token):
            logger.info("pending.token.rejected", pending_id=pending_id)
            return None
        return asset

    def store(self, asset: PendingAsset, ttl_seconds: int | None = None) -> PendingAsset:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        if asset.id is not None:
            if ttl_seconds is not None:
                asset.ttl = ttl_seconds
            return self.storage.store(asset, asset.id)

        pending_id = self.storage.generate_id()
        asset.ttl = ttl_seconds or self.storage.default_ttl_seconds
        if self.security_token is not None:
            asset.security_token = self.security_token.generate_token(pending_id)
        stored = self.storage.store(asset, pending_id)
        logger.info("pending.store.created", pending_id=pending_id, ttl=asset.ttl)
        return stored

    def delete_by_id(self, pending_id: str, token: str | None = None) -> bool:
        if self.security_token is not None:
            asset = self.storage.fetch_by_id(pending_id)
            if asset is not None and not self.security_token.validate_token(asset, token):
                logger.info("pending.token.rejected", pending_id=pending_id)
                return False
        deleted = self.storage.delete_by_id(pending_id)
        if deleted and self.security_token is not None:
            self.security_token.delete_token(pending_id)
        return deleted

    def clean_expired_pending_assets(self) -> int:
        return self.storage.clean_expired_pending_assets()

    def _is_expired(self, asset: PendingAsset) -> bool:
        if asset.created_at is None:
            return False
        ttl = asset.ttl if asset.ttl > 0 else self.storage.default_ttl_seconds
        return self.clock() > asset.created_at + timedelta(seconds=ttl)
