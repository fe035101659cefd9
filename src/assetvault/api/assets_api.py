"""HTTP endpoints serving committed assets through the access check."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse

from ..assets.asset_access import AssetAccessService, AssetFile

router = APIRouter(prefix="/assets", tags=["assets"])


def _get_access_service(request: Request) -> AssetAccessService:
    try:
        return request.app.state.access_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("AssetAccessService is not configured") from exc


def _get_principal(request: Request) -> Any:
    """Caller identity set on ``request.state.principal`` by host middleware."""
    return getattr(request.state, "principal", None)


def _file_response(asset_file: AssetFile, download: str | None) -> FileResponse:
    return FileResponse(
        asset_file.path,
        media_type=asset_file.mime_type,
        filename=asset_file.download_name,
        content_disposition_type="attachment" if download == "force" else "inline",
    )


@router.get("/temporary/{token}/{file_name:path}")
def serve_temporary(
    token: str,
    file_name: str,
    download: str | None = Query(None),
    access: AssetAccessService = Depends(_get_access_service),
) -> FileResponse:
    return _file_response(access.handle_temporary_asset_request(token), download)


@router.get("/{asset_id}/variant/{variant_name}/{file_name}")
def serve_variant(
    asset_id: int,
    variant_name: str,
    file_name: str,
    download: str | None = Query(None),
    access: AssetAccessService = Depends(_get_access_service),
    principal: Any = Depends(_get_principal),
) -> FileResponse:
    asset_file = access.handle_asset_request(asset_id, variant_name, principal=principal)
    return _file_response(asset_file, download)


@router.get("/{asset_id}/{file_name}")
def serve_asset(
    asset_id: int,
    file_name: str,
    download: str | None = Query(None),
    access: AssetAccessService = Depends(_get_access_service),
    principal: Any = Depends(_get_principal),
) -> FileResponse:
    """Stream the original file; protected collections are authorized first."""
    asset_file = access.handle_asset_request(asset_id, principal=principal)
    return _file_response(asset_file, download)


__all__ = ["router"]
