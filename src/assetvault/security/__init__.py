"""Possession tokens guarding pending uploads."""

from .pending_tokens import (
    CookiePendingToken,
    PendingSecurityToken,
    RequestPendingToken,
    SessionPendingToken,
    build_token_strategy,
    tokens_match,
)

__all__ = [
    "CookiePendingToken",
    "PendingSecurityToken",
    "RequestPendingToken",
    "SessionPendingToken",
    "build_token_strategy",
    "tokens_match",
]
