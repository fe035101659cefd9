"""Signed tokens granting time-limited access to one asset or variant."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

import jwt
import structlog
from jwt import InvalidTokenError

logger = structlog.get_logger(__name__)

ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class TemporaryGrant:
    asset_id: int
    variant: str | None
    expires_at: datetime


class TemporaryUrlSigner:
    """Issue and verify HS256 tokens for temporary asset URLs.

    A token stays valid up to and including its expiration second.
    """

    def __init__(self, signing_key: str, *, clock: Callable[[], datetime] = _utcnow) -> None:
        if not signing_key:
            raise ValueError("signing key cannot be empty")
        self._signing_key = signing_key
        self._clock = clock

    def create_token(self, asset_id: int, expiration: datetime, variant: str | None = None) -> str:
        now = self._clock()
        if expiration <= now:
            raise ValueError("expiration must be in the future")
        payload: dict[str, Any] = {
            "sub": str(asset_id),
            "variant": variant or None,
            "iat": int(now.timestamp()),
            "exp": int(expiration.timestamp()),
        }
        return jwt.encode(payload, self._signing_key, algorithm=ALGORITHM)

    def validate_token(self, token: str) -> TemporaryGrant | None:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._signing_key,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "sub"], "verify_exp": False, "verify_iat": False},
            )
            asset_id = int(payload["sub"])
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (InvalidTokenError, KeyError, TypeError, ValueError) as exc:
            logger.info("asset.temporary_url.invalid", error=str(exc))
            return None

        if self._clock() > expires_at:
            logger.info("asset.temporary_url.expired", asset_id=asset_id)
            return None
        variant = payload.get("variant")
        return TemporaryGrant(asset_id=asset_id, variant=str(variant) if variant else None, expires_at=expires_at)


__all__ = ["TemporaryGrant", "TemporaryUrlSigner"]
