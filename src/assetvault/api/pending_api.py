"""HTTP endpoints staging uploads before their owner exists."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from ..config import AssetSettings
from ..pending.pending_manager import PendingAssetManager
from ..pending.pending_models import PendingAsset
from ..pending.pending_storage import PendingStorage
from ..security.pending_tokens import build_token_strategy
from .errors import not_found_error

router = APIRouter(prefix="/api/pending", tags=["pending"])


def _get_settings(request: Request) -> AssetSettings:
    try:
        return request.app.state.settings  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("AssetSettings is not configured") from exc


def _get_storage(request: Request) -> PendingStorage:
    try:
        return request.app.state.pending_storage  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("PendingStorage is not configured") from exc


def _get_manager(
    request: Request,
    response: Response,
    settings: AssetSettings = Depends(_get_settings),
    storage: PendingStorage = Depends(_get_storage),
) -> PendingAssetManager:
    token = build_token_strategy(settings, request, response)
    return PendingAssetManager(storage, security_token=token)


def _serialize(asset: PendingAsset, *, include_token: bool) -> dict[str, Any]:
    payload = asset.to_metadata()
    payload.pop("security_token", None)
    payload["human_readable_size"] = asset.human_readable_size
    expires_at = asset.expires_at
    payload["expires_at"] = expires_at.isoformat() if expires_at else None
    if include_token:
        payload["security_token"] = asset.security_token
    return payload


@router.post("", status_code=status.HTTP_201_CREATED)
def stage_upload(
    file: UploadFile = File(...),
    name: str | None = Form(None),
    order: int = Form(0),
    preserve_original: bool = Form(False),
    ttl_seconds: int | None = Form(None, ge=1),
    manager: PendingAssetManager = Depends(_get_manager),
    settings: AssetSettings = Depends(_get_settings),
) -> dict[str, Any]:
    """Stage an upload and return its pending id."""
    pending = PendingAsset.from_upload(file).set_order(order).preserving_original(preserve_original)
    if name:
        pending.using_name(name)
    manager.store(pending, ttl_seconds)
    return _serialize(pending, include_token=settings.token_backend == "request")


@router.get("/{pending_id}")
def fetch_pending(
    pending_id: str,
    manager: PendingAssetManager = Depends(_get_manager),
) -> dict[str, Any]:
    pending = manager.fetch_by_id(pending_id)
    if pending is None:
        raise not_found_error(f"pending asset '{pending_id}' not found")
    return _serialize(pending, include_token=False)


@router.delete("/{pending_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pending(
    pending_id: str,
    manager: PendingAssetManager = Depends(_get_manager),
) -> None:
    if manager.fetch_by_id(pending_id) is None or not manager.delete_by_id(pending_id):
        raise not_found_error(f"pending asset '{pending_id}' not found")


__all__ = ["router"]
