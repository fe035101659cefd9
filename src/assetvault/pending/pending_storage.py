"""Filesystem staging area for pending assets.

Every entry is one directory holding exactly two files::

    <root>/<pending_id>/file            raw uploaded content
    <root>/<pending_id>/metadata.json   PendingAsset.to_metadata()

Storing an asset that already has an id rewrites ``metadata.json`` only; the
raw file is never copied again.
"""

from __future__ import annotations

import json
import logging
import os
import re
import secrets
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, Protocol

from ..exceptions import CorruptPendingMetadataError, PendingIdExhaustedError, StagingError
from .pending_models import PendingAsset, parse_timestamp

logger = logging.getLogger(__name__)

FILE_NAME = "file"
METADATA_NAME = "metadata.json"
ID_BYTES = 16
MAX_ID_ATTEMPTS = 5

_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingStorage(Protocol):
    """Operations of a pending staging area."""

    default_ttl_seconds: int

    def generate_id(self) -> str:
        ...

    def store(self, asset: PendingAsset, pending_id: str | None = None) -> PendingAsset:
        ...

    def fetch_by_id(self, pending_id: str) -> PendingAsset | None:
        ...

    def delete_by_id(self, pending_id: str) -> bool:
        ...

    def clean_expired_pending_assets(self) -> int:
        ...


@dataclass(slots=True)
class FilesystemPendingStorage:
    """Directory-per-entry staging store."""

    root: Path
    default_ttl_seconds: int = 24 * 60 * 60
    clock: Callable[[], datetime] = _utcnow

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        if self.default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")

    def entry_dir(self, pending_id: str) -> Path:
        if not _ID_RE.match(pending_id):
            raise StagingError(f"invalid pending id '{pending_id}'")
        return self.root / pending_id

    def generate_id(self) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = secrets.token_hex(ID_BYTES)
            if not (self.root / candidate).exists():
                return candidate
            logger.warning("pending.id.collision", extra={"pending_id": candidate})
        raise PendingIdExhaustedError(
            f"no free pending id after {MAX_ID_ATTEMPTS} attempts"
        )

    def store(self, asset: PendingAsset, pending_id: str | None = None) -> PendingAsset:
        if pending_id is not None:
            asset.id = pending_id
        if asset.id is None:
            asset.id = self.generate_id()

        directory = self.entry_dir(asset.id)
        staged = directory / FILE_NAME
        now = self.clock()
        if asset.created_at is None:
            asset.created_at = now
        asset.updated_at = now

        if staged.is_file():
            asset.path = staged
            self._write_metadata(directory, asset)
        else:
            self._create_entry(asset, directory, staged)
        logger.info(
            "pending.store.saved",
            extra={"pending_id": asset.id, "file_name": asset.file_name},
        )
        return asset

    def fetch_by_id(self, pending_id: str) -> PendingAsset | None:
        try:
            directory = self.entry_dir(pending_id)
        except StagingError:
            return None
        staged = directory / FILE_NAME
        metadata_path = directory / METADATA_NAME
        if not staged.is_file() or not metadata_path.is_file():
            return None
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
            asset = PendingAsset.from_metadata(staged, data)
            if asset.created_at is None:
                raise ValueError("created_at is missing")
            return asset
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise CorruptPendingMetadataError(pending_id) from exc

    def delete_by_id(self, pending_id: str) -> bool:
        try:
            directory = self.entry_dir(pending_id)
        except StagingError:
            return True
        if not directory.exists():
            return True
        try:
            shutil.rmtree(directory)
        except OSError as exc:
            logger.error(
                "pending.delete.failed",
                extra={"pending_id": pending_id, "error": str(exc)},
            )
            return False
        logger.info("pending.delete.removed", extra={"pending_id": pending_id})
        return True

    def expired_ids(self) -> list[str]:
        """Ids of entries past their time-to-live, skipping malformed ones."""
        now = self.clock()
        expired: list[str] = []
        for directory in self._entries():
            expires_at = self._expires_at(directory)
            if expires_at is not None and now > expires_at:
                expired.append(directory.name)
        return expired

    def clean_expired_pending_assets(self) -> int:
        removed = 0
        for pending_id in self.expired_ids():
            if self.delete_by_id(pending_id):
                removed += 1
        return removed

    def _entries(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return iter(())
        return (child for child in sorted(self.root.iterdir()) if child.is_dir())

    def _expires_at(self, directory: Path) -> datetime | None:
        metadata_path = directory / METADATA_NAME
        try:
            data = json.loads(metadata_path.read_text(encoding="utf-8"))
            created_at = parse_timestamp(data.get("created_at"))
            ttl = int(data.get("ttl") or 0) or self.default_ttl_seconds
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            logger.warning(
                "pending.sweep.skipped",
                extra={"path": str(directory), "error": str(exc)},
            )
            return None
        if created_at is None:
            logger.warning(
                "pending.sweep.skipped",
                extra={"path": str(directory), "error": "missing created_at"},
            )
            return None
        return created_at + timedelta(seconds=ttl)

    def _create_entry(self, asset: PendingAsset, directory: Path, staged: Path) -> None:
        """Stage the file and write metadata, leaving no directory behind on failure.

        A transient source that was already moved is moved back.
        """
        source = Path(asset.path)
        transient = asset.transient
        try:
            self._stage_file(asset, directory, staged)
            self._write_metadata(directory, asset)
        except StagingError:
            if transient and staged.is_file() and not source.exists():
                try:
                    shutil.move(str(staged), source)
                except OSError as exc:
                    logger.error(
                        "pending.store.restore_failed",
                        extra={"pending_id": asset.id, "path": str(source), "error": str(exc)},
                    )
            asset.path = source
            asset.transient = transient
            shutil.rmtree(directory, ignore_errors=True)
            raise

    @staticmethod
    def _stage_file(asset: PendingAsset, directory: Path, staged: Path) -> None:
        source = Path(asset.path)
        if not source.is_file():
            raise StagingError(f"source file '{source}' does not exist")
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if asset.transient:
                shutil.move(str(source), staged)
            else:
                shutil.copy2(source, staged)
        except OSError as exc:
            raise StagingError(f"file '{source}' could not be staged: {exc}") from exc
        asset.path = staged
        asset.transient = False
        asset.size = staged.stat().st_size

    @staticmethod
    def _write_metadata(directory: Path, asset: PendingAsset) -> None:
        payload = json.dumps(asset.to_metadata(), ensure_ascii=False, indent=2)
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".metadata_", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as sink:
                sink.write(payload)
            os.replace(tmp_name, directory / METADATA_NAME)
        except OSError as exc:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StagingError(
                f"metadata of pending asset '{asset.id}' could not be written: {exc}"
            ) from exc


__all__ = ["FilesystemPendingStorage", "PendingStorage", "FILE_NAME", "METADATA_NAME"]
