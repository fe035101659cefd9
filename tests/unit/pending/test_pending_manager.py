from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from src.assetvault.pending.pending_manager import PendingAssetManager
from src.assetvault.pending.pending_models import PendingAsset
from src.assetvault.pending.pending_storage import FilesystemPendingStorage
from src.assetvault.security.pending_tokens import SessionPendingToken

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
TTL = 600


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture()
def storage(tmp_path, clock) -> FilesystemPendingStorage:
    return FilesystemPendingStorage(tmp_path / "pending", default_ttl_seconds=TTL, clock=clock)


@pytest.fixture()
def manager(storage, clock) -> PendingAssetManager:
    return PendingAssetManager(storage, clock=clock)


def test_store_assigns_id_and_default_ttl(manager, make_file):
    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")))

    assert asset.id is not None
    assert asset.ttl == TTL
    assert asset.security_token is None
    assert manager.fetch_by_id(asset.id).file_name == "a.jpg"


def test_store_uses_given_ttl(manager, make_file):
    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")), ttl_seconds=30)

    assert asset.ttl == 30
    with pytest.raises(ValueError):
        manager.store(PendingAsset.from_file(make_file("b.jpg")), ttl_seconds=0)


def test_update_keeps_id_without_requesting_new_one(manager, storage, make_file):
    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")))
    storage_spy = MagicMock(wraps=storage)
    spied = PendingAssetManager(storage_spy, clock=manager.clock)

    fetched = spied.fetch_by_id(asset.id)
    fetched.using_name("second")
    spied.store(fetched)

    storage_spy.generate_id.assert_not_called()
    again = manager.fetch_by_id(asset.id)
    assert again.id == asset.id
    assert again.name == "second"
    assert again.ttl == TTL


def test_update_can_change_ttl(manager, make_file):
    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")))

    manager.store(asset, ttl_seconds=5)

    assert manager.fetch_by_id(asset.id).ttl == 5


def test_lazy_expiration_boundary(manager, storage, clock, make_file):
    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")))

    clock.now = NOW + timedelta(seconds=TTL)
    assert manager.fetch_by_id(asset.id) is not None

    clock.now = NOW + timedelta(seconds=TTL + 1)
    assert manager.fetch_by_id(asset.id) is None
    assert not (storage.root / asset.id).exists()


def test_lazy_expiration_swallows_delete_errors(storage, clock, make_file):
    asset = PendingAssetManager(storage, clock=clock).store(PendingAsset.from_file(make_file("a.jpg")))
    failing = MagicMock(wraps=storage)
    failing.delete_by_id.side_effect = OSError("busy")
    clock.now = NOW + timedelta(days=1)

    assert PendingAssetManager(failing, clock=clock).fetch_by_id(asset.id) is None
    failing.delete_by_id.assert_called_once_with(asset.id)


def test_delete_and_sweep_pass_through(manager, clock, make_file):
    kept = manager.store(PendingAsset.from_file(make_file("a.jpg")), ttl_seconds=TTL * 10)
    gone = manager.store(PendingAsset.from_file(make_file("b.jpg")))
    deleted = manager.store(PendingAsset.from_file(make_file("c.jpg")))

    assert manager.delete_by_id(deleted.id) is True
    clock.now = NOW + timedelta(seconds=TTL + 1)
    assert manager.clean_expired_pending_assets() == 1
    assert manager.fetch_by_id(kept.id) is not None
    assert manager.fetch_by_id(gone.id) is None


def test_token_binding(storage, clock, make_file):
    session: dict = {}
    token = SessionPendingToken(session, ttl_seconds=3600, clock=lambda: 1_000.0)
    manager = PendingAssetManager(storage, security_token=token, clock=clock)

    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")))

    assert asset.security_token is not None
    assert len(asset.security_token) == 32
    assert manager.fetch_by_id(asset.id) is not None
    assert manager.fetch_by_id(asset.id, token="0" * 32) is None

    stranger = PendingAssetManager(
        storage, security_token=SessionPendingToken({}, clock=lambda: 1_000.0), clock=clock
    )
    assert stranger.fetch_by_id(asset.id) is None
    assert stranger.delete_by_id(asset.id) is False
    assert (storage.root / asset.id).exists()

    assert manager.delete_by_id(asset.id) is True
    assert session == {}


def test_update_keeps_token(storage, clock, make_file):
    token = SessionPendingToken({}, clock=lambda: 1_000.0)
    manager = PendingAssetManager(storage, security_token=token, clock=clock)
    asset = manager.store(PendingAsset.from_file(make_file("a.jpg")))
    original = asset.security_token

    manager.store(asset.using_name("renamed"))

    assert manager.fetch_by_id(asset.id).security_token == original
