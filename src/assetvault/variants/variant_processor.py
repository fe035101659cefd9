"""Declaration and execution of asset variants.

Variants are produced in two passes. :class:`VariantSlots` is handed to a
policy's ``variants()`` hook and reserves one empty slot per declared name in
the asset metadata. :class:`VariantProcessor` later invokes each callback
against its slot, either inline or from the deferred variant job.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from ..assets.asset_models import Asset, AssetVariant
from ..exceptions import QueueError, VariantProcessingError
from ..policies.collection_policy import CollectionPolicy, VariantCallback, VariantPolicy
from ..repositories.interfaces import JobQueue
from ..storage.path_generator import VARIANTS_DIRNAME, ensure_directory

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class VariantDefinition:
    name: str
    callback: VariantCallback
    extension: str


class VariantSlots:
    """Collects variant declarations for one asset."""

    def __init__(self, asset: Asset) -> None:
        self.asset = asset
        self.on_queue = False
        self.definitions: dict[str, VariantDefinition] = {}

    @property
    def directory(self) -> Path:
        return self.asset.directory / VARIANTS_DIRNAME

    def asset_variant(
        self,
        name: str,
        callback: VariantCallback,
        extension: str | None = None,
    ) -> AssetVariant:
        """Reserve ``<variants>/<stem>-<name>.<ext>`` and register ``callback``."""
        if not name:
            raise ValueError("variant name cannot be empty")
        extension = (extension or self.asset.extension).lstrip(".").lower()
        stem = Path(self.asset.file_name).stem
        file_name = f"{stem}-{name}.{extension}" if extension else f"{stem}-{name}"
        path = self.directory / file_name

        existing = self.asset.metadata.get_variant(name)
        if existing is not None and existing.path == path:
            variant = existing
        else:
            info = self.asset.metadata.basic_info
            base = info.storage_base_directory_path
            variant = AssetVariant(
                name=name,
                path=path,
                storage_base_path=Path(base) if base else None,
                relative_dir=f"{info.file_relative_path}/{VARIANTS_DIRNAME}",
            )
            self.asset.metadata.add_variant(variant)

        self.definitions[name] = VariantDefinition(name, callback, extension)
        return variant

    def __len__(self) -> int:
        return len(self.definitions)

    def __bool__(self) -> bool:
        return bool(self.definitions)


class VariantProcessor:
    """Run declared variant callbacks and record their output."""

    def __init__(self, slots: VariantSlots) -> None:
        self._slots = slots

    def process(self) -> list[AssetVariant]:
        asset = self._slots.asset
        if not self._slots:
            return []
        ensure_directory(self._slots.directory)

        processed: list[AssetVariant] = []
        for name, definition in self._slots.definitions.items():
            variant = asset.metadata.get_variant(name)
            if variant is None:
                logger.warning("asset.variant.missing_slot", asset_id=asset.id, variant=name)
                continue
            try:
                definition.callback(variant, asset)
            except Exception as exc:
                raise VariantProcessingError(
                    f"variant '{name}' of asset {asset.id} failed: {exc}"
                ) from exc
            if not variant.path.is_file():
                raise VariantProcessingError(
                    f"variant '{name}' of asset {asset.id} did not produce '{variant.path}'"
                )
            variant.size = variant.path.stat().st_size
            variant.processed = True
            processed.append(variant)
            logger.info(
                "asset.variant.processed",
                asset_id=asset.id,
                variant=name,
                size=variant.size,
            )
        return processed


def declare_variants(asset: Asset, policy: CollectionPolicy) -> VariantSlots:
    """Run the declaration pass of ``policy`` for ``asset``."""
    slots = VariantSlots(asset)
    if isinstance(policy, VariantPolicy):
        policy.variants(slots, asset)
    return slots


def run_variants(
    asset: Asset,
    policy: CollectionPolicy,
    slots: VariantSlots | None = None,
) -> list[AssetVariant]:
    if slots is None:
        slots = declare_variants(asset, policy)
    return VariantProcessor(slots).process()


def variants_job_payload(asset: Asset, policy: CollectionPolicy) -> dict[str, Any]:
    return {
        "definition": policy.collection_key(),
        "definition_arguments": list(policy.arguments),
        "asset_id": asset.id,
    }


def enqueue_variants(
    asset: Asset,
    policy: CollectionPolicy,
    queue: JobQueue | None,
    queue_name: str,
    job_handler: str,
) -> dict[str, Any]:
    """Submit the deferred variant job for ``asset``; refusal raises :class:`QueueError`."""
    if queue is None:
        raise QueueError("no job queue is configured for deferred variants")
    payload = variants_job_payload(asset, policy)
    try:
        accepted = queue.push(queue_name, job_handler, payload)
    except Exception as exc:
        raise QueueError(f"variant job for asset {asset.id} was not queued: {exc}") from exc
    if not accepted:
        raise QueueError(f"variant job for asset {asset.id} was rejected by '{queue_name}'")
    logger.info(
        "asset.variant.queued",
        asset_id=asset.id,
        queue=queue_name,
        handler=job_handler,
    )
    return payload
