from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.assetvault.assets.asset_pipeline import AssetStorePipeline
from src.assetvault.assets.retention import RetentionEvictor
from src.assetvault.db import init_db
from src.assetvault.repositories.asset_repository import AssetRepository
from src.assetvault.storage.path_generator import DefaultPathLayout
from tests.mocks.job_queue import RecordingJobQueue


@pytest.fixture()
def session_factory() -> sessionmaker[Session]:
    engine = create_engine("sqlite:///:memory:", future=True)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)
    return factory


@pytest.fixture()
def record_store(session_factory) -> AssetRepository:
    return AssetRepository(session_factory)


@pytest.fixture()
def layout(tmp_path: Path) -> DefaultPathLayout:
    return DefaultPathLayout(
        public_root=tmp_path / "public",
        protected_root=tmp_path / "protected",
    )


@pytest.fixture()
def job_queue() -> RecordingJobQueue:
    return RecordingJobQueue()


@pytest.fixture()
def pipeline(record_store, layout, job_queue) -> AssetStorePipeline:
    return AssetStorePipeline(
        record_store=record_store,
        layout=layout,
        evictor=RetentionEvictor(record_store),
        queue=job_queue,
    )


@pytest.fixture()
def make_file(tmp_path: Path) -> Callable[..., Path]:
    sources = tmp_path / "sources"
    sources.mkdir()

    def _make(name: str, size: int = 16, content: bytes | None = None) -> Path:
        path = sources / name
        path.write_bytes(content if content is not None else b"x" * size)
        return path

    return _make
