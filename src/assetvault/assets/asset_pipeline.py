"""Commit sequence turning a source file into a stored asset.

``AssetStorePipeline.store`` runs six ordered stages::

    1. validate       size, extension and MIME type against the collection rules
    2. resolve path   per-asset directory under the visibility root
    3. place file     move transient sources, copy the others
    4. persist        save the record and capture its id
    5. variants       declare slots, then process inline or enqueue a job
    6. retention      evict surplus assets of the scope

A failure in stages 1-5 removes the per-asset directory, deletes the record
if one was saved and re-raises the original error. Stage 6 never fails the
store.
"""

from __future__ import annotations

import mimetypes
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import structlog

from ..events import AssetCreated, EventDispatcher, VariantCreated, dispatch
from ..exceptions import (
    ExtensionNotAllowedError,
    FileTooLargeError,
    MimeTypeNotAllowedError,
    PersistenceError,
    RepositoryError,
    StorageIOError,
)
from ..policies.collection_policy import CollectionPolicy, CollectionRules
from ..repositories.interfaces import AssetOwner, AssetRecordStore, JobQueue
from ..storage.path_generator import (
    PathGenerator,
    PathHelper,
    PathLayout,
    ensure_directory,
    remove_storage_path,
)
from ..variants.variant_processor import declare_variants, enqueue_variants, run_variants
from .asset_models import Asset, AssetMetadata, AssetVariant, BasicInfo, OwnerRef, Visibility
from .file_names import FileNameSanitizer, default_name, sanitize_file_name
from .retention import RetentionEvictor

logger = structlog.get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(slots=True)
class SourceFile:
    """File handed to the pipeline.

    ``transient`` sources (uploads, staged files) are moved into place, the
    others are copied and left where they are.
    """

    path: Path
    transient: bool = False
    file_name: str | None = None
    mime_type: str | None = None

    @property
    def original_name(self) -> str:
        return self.file_name or self.path.name

    def guess_mime_type(self) -> str:
        if self.mime_type:
            return self.mime_type
        guessed, _ = mimetypes.guess_type(self.original_name)
        return guessed or DEFAULT_MIME_TYPE

    def size(self) -> int:
        try:
            return self.path.stat().st_size
        except OSError as exc:
            raise StorageIOError(f"source file '{self.path}' does not exist") from exc


@dataclass(slots=True)
class _StoreState:
    """Side effects of one store call, used for compensation."""

    directory: Path | None = None
    asset_id: int = 0
    variants: list[AssetVariant] = field(default_factory=list)


def validate_against_rules(
    rules: CollectionRules, *, size: int, file_name: str, mime_type: str
) -> None:
    """Fail on the first rule ``file_name`` violates."""
    if rules.max_size and size > rules.max_size:
        raise FileTooLargeError(size, rules.max_size)
    extension = Path(file_name).suffix.lstrip(".").lower()
    if rules.extensions and extension not in rules.extensions:
        raise ExtensionNotAllowedError(extension, rules.extensions)
    if rules.mime_types and mime_type.lower() not in rules.mime_types:
        raise MimeTypeNotAllowedError(mime_type, rules.mime_types)


@dataclass(slots=True)
class AssetStorePipeline:
    """Store assets with compensation on failure."""

    record_store: AssetRecordStore
    layout: PathLayout
    evictor: RetentionEvictor
    queue: JobQueue | None = None
    queue_name: str = "asset_queue"
    job_handler: str = "asset_variants"
    sanitizer: FileNameSanitizer | None = sanitize_file_name
    path_helper: PathHelper = field(default_factory=PathHelper)
    events: EventDispatcher | None = None

    def store(
        self,
        source: SourceFile,
        policy: CollectionPolicy,
        owner: OwnerRef,
        *,
        owner_hook: AssetOwner | None = None,
        name: str | None = None,
        order: int = 0,
        custom_properties: Mapping[str, Any] | None = None,
        sanitize: bool = True,
    ) -> Asset:
        rules = policy.rules()
        state = _StoreState()
        log = logger.bind(collection=policy.class_path(), owner_kind=owner.kind, owner_id=owner.id)

        try:
            asset = self._commit(
                source,
                policy,
                rules,
                owner,
                state,
                name=name,
                order=order,
                custom_properties=custom_properties,
                sanitize=sanitize,
            )
        except Exception as exc:
            log.warning("asset.store.failed", error=str(exc), error_type=type(exc).__name__)
            self._compensate(state)
            raise

        log.info("asset.store.committed", asset_id=asset.id, path=str(asset.path))
        dispatch(self.events, AssetCreated(asset.id, asset, owner))
        for variant in state.variants:
            dispatch(self.events, VariantCreated(asset.id, asset, variant))
        self._enforce_retention(asset, rules, owner_hook)
        return asset

    def _commit(
        self,
        source: SourceFile,
        policy: CollectionPolicy,
        rules: CollectionRules,
        owner: OwnerRef,
        state: _StoreState,
        *,
        name: str | None,
        order: int,
        custom_properties: Mapping[str, Any] | None,
        sanitize: bool,
    ) -> Asset:
        file_name = source.original_name
        if sanitize and self.sanitizer is not None:
            file_name = self.sanitizer(file_name)
        mime_type = source.guess_mime_type()
        size = source.size()
        validate_against_rules(rules, size=size, file_name=file_name, mime_type=mime_type)

        visibility = Visibility.PROTECTED if rules.is_protected else Visibility.PUBLIC
        generator = PathGenerator(self.layout, visibility, self.path_helper)
        directory = generator.path(create=False)
        state.directory = directory
        ensure_directory(directory)

        destination = directory / file_name
        self._place_file(source, destination)

        asset = Asset(
            collection=policy.collection_key(),
            owner_kind=owner.kind_key,
            owner_id=owner.id,
            name=name or default_name(file_name),
            file_name=file_name,
            mime_type=mime_type,
            size=size,
            path=destination,
            order=order,
            metadata=AssetMetadata(
                user_custom=dict(custom_properties or {}),
                basic_info=BasicInfo(
                    owner_kind=owner.kind,
                    collection_class=policy.class_path(),
                    storage_base_directory_path=str(generator.store_directory()),
                    file_relative_path=generator.file_relative_path(),
                    is_protected=rules.is_protected,
                ),
            ),
        )
        self._save(asset)
        state.asset_id = asset.id

        slots = declare_variants(asset, policy)
        if slots:
            self._save(asset)
            if slots.on_queue:
                enqueue_variants(asset, policy, self.queue, self.queue_name, self.job_handler)
            else:
                state.variants = run_variants(asset, policy, slots)
                self._save(asset)
        return asset

    @staticmethod
    def _place_file(source: SourceFile, destination: Path) -> None:
        if not source.path.is_file():
            raise StorageIOError(f"source file '{source.path}' does not exist")
        try:
            if source.transient:
                shutil.move(str(source.path), destination)
            else:
                shutil.copy2(source.path, destination)
        except OSError as exc:
            action = "moved" if source.transient else "copied"
            raise StorageIOError(
                f"file '{source.path}' could not be {action} to '{destination}': {exc}"
            ) from exc

    def _save(self, asset: Asset) -> None:
        try:
            result = self.record_store.save(asset)
        except RepositoryError as exc:
            raise PersistenceError(str(exc)) from exc
        if result.errors:
            raise PersistenceError(result.errors)
        if result.id <= 0:
            raise PersistenceError("record store did not assign an id")
        asset.id = result.id

    def _compensate(self, state: _StoreState) -> None:
        if state.directory is not None and state.directory.exists():
            remove_storage_path(state.directory)
        if state.asset_id:
            try:
                self.record_store.delete(state.asset_id, purge=True)
            except Exception as exc:
                logger.error(
                    "asset.store.cleanup_failed",
                    asset_id=state.asset_id,
                    error=str(exc),
                )

    def _enforce_retention(
        self, asset: Asset, rules: CollectionRules, owner_hook: AssetOwner | None
    ) -> None:
        on_removed = owner_hook.remove_asset_by_id if owner_hook is not None else None
        try:
            self.evictor.enforce(asset.scope, rules.max_items, on_removed)
        except Exception as exc:
            logger.error("asset.retention.failed", asset_id=asset.id, error=str(exc))
