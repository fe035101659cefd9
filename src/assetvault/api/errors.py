"""Reusable error primitives for API exception handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from fastapi import Request, status
from fastapi.responses import JSONResponse

from ..exceptions import AssetError


@dataclass(slots=True)
class ApiError(Exception):
    """Structured application-level error for HTTP handlers."""

    status_code: int
    code: str
    message: str
    headers: Mapping[str, str] | None = None

    def to_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content={"error": {"code": self.code, "message": self.message}},
            headers=dict(self.headers or {}),
        )

    @classmethod
    def from_asset_error(cls, exc: AssetError) -> "ApiError":
        return cls(exc.status_code, exc.code, str(exc))


async def api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    """Convert :class:`ApiError` exceptions into JSON payloads."""

    return exc.to_response()


async def asset_error_handler(_: Request, exc: AssetError) -> JSONResponse:
    """Render domain errors with the status code they carry."""

    return ApiError.from_asset_error(exc).to_response()


def not_found_error(message: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "not_found", message)


__all__ = ["ApiError", "api_error_handler", "asset_error_handler", "not_found_error"]
