"""Staged assets awaiting an owner."""

from __future__ import annotations

import base64
import binascii
import mimetypes
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, BinaryIO, Mapping

from ..assets.asset_models import format_bytes_human_readable
from ..assets.file_names import default_name
from ..exceptions import StagingError

DEFAULT_MIME_TYPE = "application/octet-stream"


def parse_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _guess_mime_type(file_name: str) -> str:
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or DEFAULT_MIME_TYPE


def _spool_to_temp(source: BinaryIO, suffix: str) -> Path:
    with tempfile.NamedTemporaryFile(prefix="pending_", suffix=suffix, delete=False) as sink:
        shutil.copyfileobj(source, sink)
    return Path(sink.name)


@dataclass(slots=True)
class PendingAsset:
    """File held in the staging area until it is committed to a collection.

    ``id`` is assigned on first store and never changes afterwards. ``path``
    points at the source before staging and at the staged copy after it.
    """

    path: Path
    file_name: str
    name: str = ""
    mime_type: str = DEFAULT_MIME_TYPE
    size: int = 0
    order: int = 0
    preserve_original: bool = False
    custom_properties: dict[str, Any] = field(default_factory=dict)
    security_token: str | None = None
    ttl: int = 0
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    transient: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            self.name = default_name(self.file_name)

    @classmethod
    def from_file(
        cls,
        path: Path | str,
        *,
        file_name: str | None = None,
        mime_type: str | None = None,
        transient: bool = False,
    ) -> "PendingAsset":
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError as exc:
            raise StagingError(f"source file '{path}' does not exist") from exc
        file_name = file_name or path.name
        return cls(
            path=path,
            file_name=file_name,
            mime_type=mime_type or _guess_mime_type(file_name),
            size=size,
            transient=transient,
        )

    @classmethod
    def from_bytes(
        cls, data: bytes, file_name: str, *, mime_type: str | None = None
    ) -> "PendingAsset":
        with tempfile.NamedTemporaryFile(
            prefix="pending_", suffix=Path(file_name).suffix, delete=False
        ) as sink:
            sink.write(data)
        return cls.from_file(sink.name, file_name=file_name, mime_type=mime_type, transient=True)

    @classmethod
    def from_base64(
        cls, encoded: str, file_name: str, *, mime_type: str | None = None
    ) -> "PendingAsset":
        if "," in encoded and encoded.startswith("data:"):
            header, encoded = encoded.split(",", 1)
            mime_type = mime_type or header[5:].split(";", 1)[0] or None
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise StagingError(f"invalid base64 content for '{file_name}'") from exc
        return cls.from_bytes(data, file_name, mime_type=mime_type)

    @classmethod
    def from_upload(cls, upload: Any) -> "PendingAsset":
        """Spool a FastAPI ``UploadFile`` to a transient temp file."""
        file_name = upload.filename or "upload"
        upload.file.seek(0)
        path = _spool_to_temp(upload.file, Path(file_name).suffix)
        return cls.from_file(
            path,
            file_name=file_name,
            mime_type=upload.content_type or None,
            transient=True,
        )

    def using_name(self, name: str) -> "PendingAsset":
        self.name = name
        return self

    def using_file_name(self, file_name: str) -> "PendingAsset":
        self.file_name = file_name
        return self

    def set_order(self, order: int) -> "PendingAsset":
        self.order = order
        return self

    def preserving_original(self, preserve: bool = True) -> "PendingAsset":
        self.preserve_original = preserve
        return self

    def with_custom_property(self, key: str, value: Any) -> "PendingAsset":
        self.custom_properties[key] = value
        return self

    def with_custom_properties(self, properties: Mapping[str, Any]) -> "PendingAsset":
        self.custom_properties.update(properties)
        return self

    @property
    def expires_at(self) -> datetime | None:
        if self.created_at is None:
            return None
        return self.created_at + timedelta(seconds=self.ttl)

    def is_expired(self, now: datetime) -> bool:
        """Expired strictly after ``created_at + ttl``."""
        expires_at = self.expires_at
        return expires_at is not None and now > expires_at

    @property
    def human_readable_size(self) -> str:
        return format_bytes_human_readable(self.size)

    def to_metadata(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size": self.size,
            "order": self.order,
            "preserve_original": self.preserve_original,
            "custom_properties": dict(self.custom_properties),
            "created_at": _format_timestamp(self.created_at),
            "updated_at": _format_timestamp(self.updated_at),
            "security_token": self.security_token,
            "ttl": self.ttl,
        }

    @classmethod
    def from_metadata(cls, path: Path, data: Mapping[str, Any]) -> "PendingAsset":
        """Rebuild a staged asset; malformed documents raise ``KeyError``/``ValueError``."""
        custom = data.get("custom_properties") or {}
        if not isinstance(custom, dict):
            raise ValueError("custom_properties must be an object")
        return cls(
            id=str(data["id"]),
            path=path,
            file_name=str(data["file_name"]),
            name=str(data.get("name") or ""),
            mime_type=str(data.get("mime_type") or DEFAULT_MIME_TYPE),
            size=int(data.get("size", 0)),
            order=int(data.get("order", 0)),
            preserve_original=bool(data.get("preserve_original", False)),
            custom_properties=dict(custom),
            security_token=data.get("security_token"),
            ttl=int(data.get("ttl") or 0),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )


__all__ = ["PendingAsset", "DEFAULT_MIME_TYPE"]
