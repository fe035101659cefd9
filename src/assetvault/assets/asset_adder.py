"""Fluent entry point for attaching a file to an owner's collection.

::

    asset = (
        AssetAdder.from_path(Path("photo.jpg"), owner)
        .using_name("Profile photo")
        .with_custom_property("alt", "me")
        .to_collection(Avatars(), pipeline)
    )
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from ..policies.collection_policy import CollectionPolicy
from ..repositories.interfaces import AssetOwner
from .asset_models import Asset, OwnerRef
from .asset_pipeline import AssetStorePipeline, SourceFile
from .file_names import FileNameSanitizer, sanitize_file_name

if TYPE_CHECKING:
    from ..pending.pending_manager import PendingAssetManager
    from ..pending.pending_models import PendingAsset

logger = logging.getLogger(__name__)


class AssetAdder:
    def __init__(
        self,
        source: SourceFile,
        owner: OwnerRef,
        *,
        pending_id: str | None = None,
        pending_manager: "PendingAssetManager | None" = None,
        preserve_original: bool = False,
    ) -> None:
        self.source = source
        self.owner = owner
        self._pending_id = pending_id
        self._pending_manager = pending_manager
        self._preserve_original = preserve_original
        self._name: str | None = None
        self._order = 0
        self._custom_properties: dict[str, Any] = {}
        self._sanitizer: FileNameSanitizer | None = sanitize_file_name
        self._pending_preserve = False

    @classmethod
    def from_path(cls, path: Path | str, owner: OwnerRef) -> "AssetAdder":
        return cls(SourceFile(Path(path)), owner)

    @classmethod
    def from_upload(cls, upload: Any, owner: OwnerRef) -> "AssetAdder":
        """Spool a FastAPI ``UploadFile`` to a temp file that is moved into place."""
        file_name = upload.filename or "upload"
        upload.file.seek(0)
        with tempfile.NamedTemporaryFile(
            prefix="upload_", suffix=Path(file_name).suffix, delete=False
        ) as sink:
            shutil.copyfileobj(upload.file, sink)
        source = SourceFile(
            Path(sink.name),
            transient=True,
            file_name=file_name,
            mime_type=upload.content_type or None,
        )
        return cls(source, owner)

    @classmethod
    def from_pending(
        cls, pending: "PendingAsset", owner: OwnerRef, manager: "PendingAssetManager"
    ) -> "AssetAdder":
        """Commit a staged :class:`~src.assetvault.pending.PendingAsset`.

        The staged copy is left in place; the entry is deleted from the staging
        area after a successful store unless it asked to be preserved.
        """
        source = SourceFile(
            Path(pending.path),
            transient=False,
            file_name=pending.file_name,
            mime_type=pending.mime_type,
        )
        adder = cls(
            source,
            owner,
            pending_id=pending.id,
            pending_manager=manager,
            preserve_original=True,
        )
        adder._name = pending.name or None
        adder._order = pending.order
        adder._custom_properties = dict(pending.custom_properties)
        adder._pending_preserve = bool(pending.preserve_original)
        return adder

    def using_name(self, name: str) -> "AssetAdder":
        self._name = name
        return self

    def using_file_name(self, file_name: str) -> "AssetAdder":
        self.source.file_name = file_name
        return self

    def set_order(self, order: int) -> "AssetAdder":
        self._order = order
        return self

    def with_custom_property(self, key: str, value: Any) -> "AssetAdder":
        self._custom_properties[key] = value
        return self

    def with_custom_properties(self, properties: Mapping[str, Any]) -> "AssetAdder":
        self._custom_properties.update(properties)
        return self

    def preserving_original(self, preserve: bool = True) -> "AssetAdder":
        self._preserve_original = preserve
        return self

    def sanitizing_file_name(self, sanitizer: FileNameSanitizer | None) -> "AssetAdder":
        """Replace the default sanitizer; ``None`` keeps the file name as given."""
        self._sanitizer = sanitizer
        return self

    def to_collection(
        self,
        policy: CollectionPolicy,
        pipeline: AssetStorePipeline,
        owner_hook: AssetOwner | None = None,
    ) -> Asset:
        if self._sanitizer is not None:
            self.source.file_name = self._sanitizer(self.source.original_name)
        asset = pipeline.store(
            self.source,
            policy,
            self.owner,
            owner_hook=owner_hook,
            name=self._name,
            order=self._order,
            custom_properties=self._custom_properties,
            sanitize=False,
        )
        self._release_source()
        return asset

    def _release_source(self) -> None:
        if self._pending_id is not None:
            if not self._pending_preserve and self._pending_manager is not None:
                self._pending_manager.storage.delete_by_id(self._pending_id)
            return
        if self.source.transient or self._preserve_original:
            return
        try:
            self.source.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(
                "asset.adder.source_not_removed",
                extra={"path": str(self.source.path), "error": str(exc)},
            )
