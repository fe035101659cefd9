from datetime import datetime, timezone

import pytest

from src.assetvault.assets.asset_models import Visibility
from src.assetvault.exceptions import StorageIOError
from src.assetvault.storage.path_generator import (
    PathGenerator,
    PathHelper,
    ensure_directory,
    remove_storage_path,
)

FIXED = datetime(2024, 3, 9, 14, 5, 6, 123456, tzinfo=timezone.utc)


def test_helper_segments():
    helper = PathHelper(clock=lambda: FIXED)

    assert helper.date_segment() == "2024-03-09"
    assert helper.time_segment() == "140506.123456"
    assert len(helper.unique_id()) == 8
    assert helper.unique_segment().startswith("140506.123456_")


def test_generator_builds_public_and_protected_paths(layout):
    helper = PathHelper(clock=lambda: FIXED)
    public = PathGenerator(layout, Visibility.PUBLIC, helper)
    protected = PathGenerator(layout, Visibility.PROTECTED, helper)

    public_dir = public.path()
    protected_dir = protected.path()

    assert public_dir.is_dir()
    assert public_dir.parent == layout.public_root / "assets" / "2024-03-09"
    assert protected_dir.parent == layout.protected_root / "assets" / "2024-03-09"
    assert public.variants_path() == public_dir / "variants"
    assert public.variants_path().is_dir()


def test_generator_memoises_relative_path(layout):
    generator = PathGenerator(layout, Visibility.PUBLIC)

    first = generator.file_relative_path()

    assert generator.file_relative_path() == first
    assert generator.path(create=False) == layout.public_root / first
    assert not generator.path(create=False).exists()


def test_paths_are_unique_per_generator(layout):
    paths = {PathGenerator(layout, Visibility.PUBLIC).file_relative_path() for _ in range(50)}

    assert len(paths) == 50


def test_ensure_directory_fails_when_path_is_a_file(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    with pytest.raises(StorageIOError):
        ensure_directory(blocker / "child")


def test_remove_storage_path_handles_trees_files_and_missing(tmp_path):
    tree = tmp_path / "tree" / "nested"
    tree.mkdir(parents=True)
    (tree / "a.bin").write_bytes(b"1")
    single = tmp_path / "single.bin"
    single.write_bytes(b"2")

    remove_storage_path(tmp_path / "tree")
    remove_storage_path(single)
    remove_storage_path(tmp_path / "missing")

    assert not (tmp_path / "tree").exists()
    assert not single.exists()
