"""Record store wrapper injecting failures into a real repository."""

from __future__ import annotations

from typing import Sequence

from src.assetvault.assets.asset_models import Asset, RetentionScope
from src.assetvault.repositories.interfaces import SaveResult


class ScriptedRecordStore:
    def __init__(
        self,
        inner,
        *,
        fail_save_on_call: int | None = None,
        save_errors: Sequence[str] = ("The name field is required.",),
        scope_error: Exception | None = None,
        delete_error: Exception | None = None,
    ) -> None:
        self.inner = inner
        self.fail_save_on_call = fail_save_on_call
        self.save_errors = list(save_errors)
        self.scope_error = scope_error
        self.delete_error = delete_error
        self.save_calls = 0
        self.saved_ids: list[int] = []
        self.deleted: list[tuple[int, bool]] = []

    def save(self, asset: Asset) -> SaveResult:
        self.save_calls += 1
        if self.fail_save_on_call == self.save_calls:
            return SaveResult(errors=list(self.save_errors))
        result = self.inner.save(asset)
        if result.id and result.id not in self.saved_ids:
            self.saved_ids.append(result.id)
        return result

    def find(self, asset_id: int, *, with_deleted: bool = False) -> Asset | None:
        return self.inner.find(asset_id, with_deleted=with_deleted)

    def delete(self, asset_id: int, *, purge: bool = False) -> None:
        self.deleted.append((asset_id, purge))
        if self.delete_error is not None:
            raise self.delete_error
        self.inner.delete(asset_id, purge=purge)

    def find_ids_in_scope(
        self, scope: RetentionScope, *, offset: int = 0, limit: int | None = None
    ) -> list[int]:
        if self.scope_error is not None:
            raise self.scope_error
        return self.inner.find_ids_in_scope(scope, offset=offset, limit=limit)

    def soft_delete_many(self, asset_ids: Sequence[int]) -> int:
        return self.inner.soft_delete_many(asset_ids)

    def find_deleted(self, limit: int) -> list[Asset]:
        return self.inner.find_deleted(limit)
