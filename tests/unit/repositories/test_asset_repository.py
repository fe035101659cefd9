from datetime import datetime, timedelta
from pathlib import Path

from src.assetvault.assets.asset_models import (
    Asset,
    AssetMetadata,
    AssetVariant,
    RetentionScope,
)


def make_asset(**overrides) -> Asset:
    values = dict(
        collection="c" * 32,
        owner_kind="k" * 32,
        owner_id=1,
        name="photo",
        file_name="photo.jpg",
        mime_type="image/jpeg",
        size=2048,
        path=Path("/srv/assets/photo.jpg"),
    )
    values.update(overrides)
    return Asset(**values)


def test_save_assigns_id_and_round_trips(record_store):
    metadata = AssetMetadata(user_custom={"alt": "cat"})
    metadata.add_variant(AssetVariant(name="thumb", path=Path("/srv/assets/variants/t.jpg")))
    asset = make_asset(metadata=metadata, order=2)

    result = record_store.save(asset)

    assert result.ok
    assert asset.id == result.id
    assert asset.created_at is not None
    stored = record_store.find(result.id)
    assert stored.file_name == "photo.jpg"
    assert stored.order == 2
    assert stored.path == Path("/srv/assets/photo.jpg")
    assert stored.metadata.user_custom == {"alt": "cat"}
    assert stored.metadata.get_variant("thumb").processed is False


def test_save_updates_existing_record(record_store):
    asset = make_asset()
    record_store.save(asset)
    created_at = asset.created_at

    asset.name = "renamed"
    result = record_store.save(asset)

    assert result.id == asset.id
    stored = record_store.find(asset.id)
    assert stored.name == "renamed"
    assert stored.created_at == created_at


def test_save_reports_field_errors(record_store):
    result = record_store.save(make_asset(name="", collection="x" * 40, size=-1))

    assert result.id == 0
    assert not result.ok
    assert "The name field is required." in result.errors
    assert "The collection field cannot exceed 32 characters." in result.errors
    assert "The size field must be a non-negative integer." in result.errors


def test_soft_and_hard_delete(record_store):
    asset = make_asset()
    record_store.save(asset)

    record_store.delete(asset.id)
    assert record_store.find(asset.id) is None
    assert record_store.find(asset.id, with_deleted=True).deleted_at is not None
    assert [a.id for a in record_store.find_deleted(10)] == [asset.id]

    record_store.delete(asset.id, purge=True)
    assert record_store.find(asset.id, with_deleted=True) is None
    record_store.delete(asset.id, purge=True)


def test_scope_query_orders_newest_first_with_offset(record_store):
    base = datetime(2024, 1, 1)
    ids = []
    for minutes in (0, 10, 5):
        asset = make_asset(created_at=base + timedelta(minutes=minutes))
        ids.append(record_store.save(asset).id)
    record_store.save(make_asset(owner_id=2))
    scope = RetentionScope(collection="c" * 32, owner_kind="k" * 32, owner_id=1)

    assert record_store.find_ids_in_scope(scope) == [ids[1], ids[2], ids[0]]
    assert record_store.find_ids_in_scope(scope, offset=1) == [ids[2], ids[0]]
    assert record_store.find_ids_in_scope(scope, offset=1, limit=1) == [ids[2]]


def test_soft_delete_many_is_a_single_bulk_update(record_store):
    ids = [record_store.save(make_asset()).id for _ in range(3)]

    assert record_store.soft_delete_many(ids[:2]) == 2
    assert record_store.soft_delete_many(ids[:2]) == 0
    assert record_store.soft_delete_many([]) == 0
    assert record_store.find(ids[2]) is not None
