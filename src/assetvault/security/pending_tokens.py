"""Possession tokens for pending assets.

A token proves that the caller holding it staged the pending asset. Three
interchangeable strategies keep it in different places:

* :class:`CookiePendingToken` - one client cookie shared by all pending ids.
* :class:`SessionPendingToken` - server session entries keyed by pending id,
  each with its own expiry.
* :class:`RequestPendingToken` - a header or form field supplied by the
  caller, nothing is stored server side.

Validation always compares against the token recorded on the pending asset
itself, using :func:`hmac.compare_digest`.
"""

from __future__ import annotations

import hmac
import secrets
import time
from typing import Any, Callable, Mapping, MutableMapping, Protocol

import structlog

from ..config import WEEK_SECONDS, AssetSettings
from ..pending.pending_models import PendingAsset

logger = structlog.get_logger(__name__)

MAX_TOKEN_LENGTH = 64


class PendingSecurityToken(Protocol):
    def generate_token(self, pending_id: str) -> str:
        ...

    def retrieve_token(self, pending_id: str) -> str | None:
        ...

    def validate_token(self, asset: PendingAsset, provided: str | None = None) -> bool:
        ...

    def delete_token(self, pending_id: str) -> None:
        ...


def _check_ttl(ttl_seconds: int) -> int:
    if ttl_seconds <= 0:
        raise ValueError("token ttl must be a positive number of seconds")
    return ttl_seconds


def _check_length(length: int) -> int:
    if not 1 <= length <= MAX_TOKEN_LENGTH:
        raise ValueError(f"token length must be between 1 and {MAX_TOKEN_LENGTH} bytes")
    return length


def tokens_match(recorded: str | None, provided: str | None) -> bool:
    """Constant time comparison; an absent side never matches."""
    if not recorded or not provided:
        return False
    return hmac.compare_digest(recorded.encode("utf-8"), provided.encode("utf-8"))


class CookiePendingToken:
    """Token carried by a single client cookie."""

    def __init__(
        self,
        request: Any,
        response: Any,
        ttl_seconds: int = WEEK_SECONDS,
        length: int = 16,
        cookie_name: str = "__asset_pending_security_token_",
    ) -> None:
        self._request = request
        self._response = response
        self.ttl_seconds = _check_ttl(ttl_seconds)
        self.length = _check_length(length)
        self.cookie_name = cookie_name
        self._issued: str | None = None
        self._deleted = False

    def generate_token(self, pending_id: str) -> str:
        existing = self.retrieve_token(pending_id)
        if existing:
            return existing
        token = secrets.token_hex(self.length)
        self._response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=self.ttl_seconds,
            httponly=True,
            samesite="lax",
        )
        self._issued = token
        self._deleted = False
        return token

    def retrieve_token(self, pending_id: str) -> str | None:
        if self._issued:
            return self._issued
        if self._deleted:
            return None
        return self._request.cookies.get(self.cookie_name) or None

    def validate_token(self, asset: PendingAsset, provided: str | None = None) -> bool:
        if provided is None and asset.id is not None:
            provided = self.retrieve_token(asset.id)
        return tokens_match(asset.security_token, provided)

    def delete_token(self, pending_id: str) -> None:
        self._response.delete_cookie(self.cookie_name)
        self._issued = None
        self._deleted = True


class SessionPendingToken:
    """Tokens kept in a server side session, one entry per pending id."""

    def __init__(
        self,
        session: MutableMapping[str, Any],
        ttl_seconds: int = WEEK_SECONDS,
        length: int = 16,
        key_prefix: str = "__pending_security_token_",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self.ttl_seconds = _check_ttl(ttl_seconds)
        self.length = _check_length(length)
        self.key_prefix = key_prefix
        self._clock = clock

    def _key(self, pending_id: str) -> str:
        return f"{self.key_prefix}{pending_id}"

    def generate_token(self, pending_id: str) -> str:
        existing = self.retrieve_token(pending_id)
        if existing:
            return existing
        token = secrets.token_hex(self.length)
        self._session[self._key(pending_id)] = {
            "token": token,
            "expires_at": self._clock() + self.ttl_seconds,
        }
        return token

    def retrieve_token(self, pending_id: str) -> str | None:
        entry = self._session.get(self._key(pending_id))
        if not isinstance(entry, Mapping):
            return None
        try:
            expires_at = float(entry.get("expires_at", 0))
        except (TypeError, ValueError):
            expires_at = 0.0
        if self._clock() > expires_at:
            self._session.pop(self._key(pending_id), None)
            logger.info("pending.token.expired", pending_id=pending_id)
            return None
        token = entry.get("token")
        return str(token) if token else None

    def validate_token(self, asset: PendingAsset, provided: str | None = None) -> bool:
        if provided is None and asset.id is not None:
            provided = self.retrieve_token(asset.id)
        return tokens_match(asset.security_token, provided)

    def delete_token(self, pending_id: str) -> None:
        self._session.pop(self._key(pending_id), None)


class RequestPendingToken:
    """Token supplied by the caller in a header or a form field."""

    def __init__(
        self,
        request: Any,
        length: int = 16,
        header_name: str = "X-Pending-Token",
        field_name: str = "pending_token",
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        self._request = request
        self.length = _check_length(length)
        self.header_name = header_name
        self.field_name = field_name
        self._fields = fields or {}
        self._issued: dict[str, str] = {}

    def generate_token(self, pending_id: str) -> str:
        """Always a fresh random token; incoming headers and fields are never adopted."""
        token = secrets.token_hex(self.length)
        self._issued[pending_id] = token
        return token

    def retrieve_token(self, pending_id: str) -> str | None:
        if pending_id in self._issued:
            return self._issued[pending_id]
        headers = getattr(self._request, "headers", None) or {}
        value = headers.get(self.header_name) or self._fields.get(self.field_name)
        return str(value) if value else None

    def validate_token(self, asset: PendingAsset, provided: str | None = None) -> bool:
        if provided is None and asset.id is not None:
            provided = self.retrieve_token(asset.id)
        return tokens_match(asset.security_token, provided)

    def delete_token(self, pending_id: str) -> None:
        self._issued.pop(pending_id, None)


def build_token_strategy(
    settings: AssetSettings,
    request: Any,
    response: Any = None,
    *,
    fields: Mapping[str, Any] | None = None,
) -> PendingSecurityToken | None:
    """Pick the token strategy named by ``settings.token_backend``."""
    backend = settings.token_backend
    if backend == "none":
        return None
    if backend == "cookie":
        return CookiePendingToken(
            request,
            response,
            ttl_seconds=settings.token_ttl_seconds,
            length=settings.token_length,
            cookie_name=settings.token_cookie_name,
        )
    if backend == "session":
        return SessionPendingToken(
            request.session,
            ttl_seconds=settings.token_ttl_seconds,
            length=settings.token_length,
            key_prefix=settings.token_session_prefix,
        )
    if backend == "request":
        return RequestPendingToken(
            request,
            length=settings.token_length,
            header_name=settings.token_header,
            field_name=settings.token_field,
            fields=fields,
        )
    raise ValueError(f"unknown token backend: {backend}")


__all__ = [
    "CookiePendingToken",
    "PendingSecurityToken",
    "RequestPendingToken",
    "SessionPendingToken",
    "build_token_strategy",
    "tokens_match",
]
