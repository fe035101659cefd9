"""Asset data models.

``Asset`` mirrors a row of the ``assets`` table. Its ``metadata`` bundle is
serialised as one JSON document with three sections: ``user_custom`` (free
key/values), ``asset_variants`` (declared variants keyed by name) and
``basic_info`` (owner/collection identity and storage paths).
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


class Visibility(str, Enum):
    """Whether stored files are directly servable."""

    PUBLIC = "public"
    PROTECTED = "protected"


def utcnow() -> datetime:
    """Naive UTC timestamp used for record store columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def owner_kind_key(kind: str) -> str:
    """Derive the opaque 32 character key stored for an owner kind."""
    return hashlib.md5(kind.encode("utf-8")).hexdigest()


def format_bytes_human_readable(size: int, precision: int = 2) -> str:
    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    size = max(size, 0)
    power = math.floor(math.log(size) / math.log(1024)) if size > 0 else 0
    power = min(power, len(units) - 1)
    value = round(size / (1024**power), precision)
    if value == int(value):
        value = int(value)
    return f"{value} {units[power]}"


@dataclass(slots=True, frozen=True)
class OwnerRef:
    """Reference to the record an asset is attached to."""

    kind: str
    id: int

    @property
    def kind_key(self) -> str:
        return owner_kind_key(self.kind)


@dataclass(slots=True, frozen=True)
class RetentionScope:
    """Query key selecting the assets a retention cap applies to."""

    collection: str
    owner_kind: str
    owner_id: int


@dataclass(slots=True)
class AssetVariant:
    """Derived file owned by exactly one asset."""

    name: str
    path: Path
    size: int = 0
    processed: bool = False
    storage_base_path: Path | None = None
    relative_dir: str = ""

    @property
    def file_name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        return self.path.suffix.lstrip(".")

    @property
    def relative_path(self) -> str:
        if self.storage_base_path is None:
            raise ValueError("storage base path is not set")
        relative = self.path.relative_to(self.storage_base_path).as_posix()
        return "/" + relative

    def write_file(self, data: bytes) -> None:
        """Write derived content and mark the variant as processed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(data)
        self.size = self.path.stat().st_size
        self.processed = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "processed": self.processed,
            "paths": {
                "storage_base_directory_path": (
                    str(self.storage_base_path) if self.storage_base_path else None
                ),
                "file_relative_path": self.relative_dir,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetVariant":
        paths = data.get("paths") or {}
        base = paths.get("storage_base_directory_path")
        return cls(
            name=str(data["name"]),
            path=Path(data["path"]),
            size=int(data.get("size", 0)),
            processed=bool(data.get("processed", False)),
            storage_base_path=Path(base) if base else None,
            relative_dir=str(paths.get("file_relative_path", "")),
        )


@dataclass(slots=True)
class BasicInfo:
    owner_kind: str = ""
    collection_class: str = ""
    storage_base_directory_path: str = ""
    file_relative_path: str = ""
    is_protected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner_kind": self.owner_kind,
            "collection_class": self.collection_class,
            "storage_base_directory_path": self.storage_base_directory_path,
            "file_relative_path": self.file_relative_path,
            "is_protected": self.is_protected,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BasicInfo":
        return cls(
            owner_kind=str(data.get("owner_kind", "")),
            collection_class=str(data.get("collection_class", "")),
            storage_base_directory_path=str(data.get("storage_base_directory_path", "")),
            file_relative_path=str(data.get("file_relative_path", "")),
            is_protected=bool(data.get("is_protected", False)),
        )


@dataclass(slots=True)
class AssetMetadata:
    user_custom: dict[str, Any] = field(default_factory=dict)
    variants: dict[str, AssetVariant] = field(default_factory=dict)
    basic_info: BasicInfo = field(default_factory=BasicInfo)

    def add_variant(self, variant: AssetVariant) -> None:
        self.variants[variant.name] = variant

    def get_variant(self, name: str) -> AssetVariant | None:
        return self.variants.get(name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_custom": dict(self.user_custom),
            "asset_variants": {name: v.to_dict() for name, v in self.variants.items()},
            "basic_info": self.basic_info.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AssetMetadata":
        data = data or {}
        variants = {
            name: AssetVariant.from_dict(raw)
            for name, raw in (data.get("asset_variants") or {}).items()
        }
        return cls(
            user_custom=dict(data.get("user_custom") or {}),
            variants=variants,
            basic_info=BasicInfo.from_dict(data.get("basic_info") or {}),
        )


@dataclass(slots=True)
class Asset:
    """Committed binary resource attached to an owner record."""

    collection: str
    owner_kind: str
    owner_id: int
    name: str
    file_name: str
    mime_type: str
    size: int
    path: Path
    order: int = 0
    metadata: AssetMetadata = field(default_factory=AssetMetadata)
    id: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def extension(self) -> str:
        return Path(self.file_name).suffix.lstrip(".")

    @property
    def is_protected(self) -> bool:
        return self.metadata.basic_info.is_protected

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def relative_path(self) -> str:
        info = self.metadata.basic_info
        return (Path(info.file_relative_path) / self.file_name).as_posix()

    @property
    def human_readable_size(self) -> str:
        return format_bytes_human_readable(self.size)

    @property
    def scope(self) -> RetentionScope:
        return RetentionScope(
            collection=self.collection,
            owner_kind=self.owner_kind,
            owner_id=self.owner_id,
        )
