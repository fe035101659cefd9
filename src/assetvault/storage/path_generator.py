"""Destination directories for committed assets and their variants.

Layout under the visibility root::

    assets/<YYYY-MM-DD>/<HHMMSS.ffffff>_<random>/<file_name>
    assets/<YYYY-MM-DD>/<HHMMSS.ffffff>_<random>/variants/<stem>-<variant>.<ext>

Each asset gets its own directory so that cleanup can remove it wholesale.
"""

from __future__ import annotations

import logging
import os
import secrets
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol

from ..assets.asset_models import Visibility
from ..exceptions import StorageIOError

logger = logging.getLogger(__name__)

VARIANTS_DIRNAME = "variants"


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class PathHelper:
    """Time and uniqueness segments used by path layouts."""

    clock: Callable[[], datetime] = _default_clock
    random_bytes: int = 4

    def date_segment(self) -> str:
        return self.clock().strftime("%Y-%m-%d")

    def time_segment(self) -> str:
        return self.clock().strftime("%H%M%S.%f")

    def unique_id(self) -> str:
        return secrets.token_hex(self.random_bytes)

    def unique_segment(self) -> str:
        return f"{self.time_segment()}_{self.unique_id()}"


class PathLayout(Protocol):
    """Strategy deciding where an asset is written."""

    def store_directory(self, helper: PathHelper, visibility: Visibility) -> Path:
        """Root directory for the given visibility."""

    def file_relative_path(self, helper: PathHelper, visibility: Visibility) -> str:
        """Directory of one asset relative to :meth:`store_directory`."""


@dataclass(slots=True)
class DefaultPathLayout:
    public_root: Path
    protected_root: Path

    def store_directory(self, helper: PathHelper, visibility: Visibility) -> Path:
        if visibility is Visibility.PROTECTED:
            return self.protected_root
        return self.public_root

    def file_relative_path(self, helper: PathHelper, visibility: Visibility) -> str:
        return f"assets/{helper.date_segment()}/{helper.unique_segment()}"


@dataclass(slots=True)
class PathGenerator:
    """Resolve, memoise and create the directories of a single asset."""

    layout: PathLayout
    visibility: Visibility
    helper: PathHelper = field(default_factory=PathHelper)
    _store_directory: Path | None = field(default=None, init=False, repr=False)
    _relative: str | None = field(default=None, init=False, repr=False)

    def store_directory(self) -> Path:
        if self._store_directory is None:
            self._store_directory = Path(
                self.layout.store_directory(self.helper, self.visibility)
            )
        return self._store_directory

    def file_relative_path(self) -> str:
        if self._relative is None:
            self._relative = self.layout.file_relative_path(self.helper, self.visibility)
        return self._relative

    def variants_relative_path(self) -> str:
        return f"{self.file_relative_path()}/{VARIANTS_DIRNAME}"

    def path(self, *, create: bool = True) -> Path:
        directory = self.store_directory() / self.file_relative_path()
        if create:
            ensure_directory(directory)
        return directory

    def variants_path(self, *, create: bool = True) -> Path:
        directory = self.store_directory() / self.variants_relative_path()
        if create:
            ensure_directory(directory)
        return directory


def ensure_directory(path: Path) -> None:
    """Create ``path`` if missing and verify it can be used for storage."""
    try:
        path.mkdir(mode=0o755, parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageIOError(f"directory '{path}' was not created: {exc}") from exc
    if not path.is_dir():
        raise StorageIOError(f"'{path}' is not a directory")
    if not os.access(path, os.W_OK):
        raise StorageIOError(f"directory '{path}' is not writable")
    if not os.access(path, os.R_OK | os.X_OK):
        raise StorageIOError(f"directory '{path}' is not readable")
    logger.debug("storage.directory.ready", extra={"path": str(path)})


def remove_storage_path(path: Path) -> None:
    """Remove a file or a directory tree, logging failures instead of raising."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink(missing_ok=True)
    except OSError as exc:
        logger.error(
            "storage.remove.failed",
            extra={"path": str(path), "error": str(exc)},
        )
