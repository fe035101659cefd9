import pytest
from pydantic import ValidationError
from sqlalchemy import inspect

from src.assetvault.config import AssetSettings, load_config


def test_settings_read_prefixed_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ASSETVAULT_PENDING_ROOT", str(tmp_path / "staging"))
    monkeypatch.setenv("ASSETVAULT_TOKEN_BACKEND", "session")
    monkeypatch.setenv("ASSETVAULT_PENDING_TTL_SECONDS", "90")

    settings = AssetSettings()

    assert settings.pending_root == tmp_path / "staging"
    assert settings.token_backend == "session"
    assert settings.pending_ttl_seconds == 90


def test_settings_reject_unknown_backend(monkeypatch):
    monkeypatch.setenv("ASSETVAULT_TOKEN_BACKEND", "carrier-pigeon")

    with pytest.raises(ValidationError):
        AssetSettings()


def test_load_config_creates_roots_and_schema(tmp_path):
    settings = AssetSettings(
        database_url="sqlite://",
        public_root=tmp_path / "public",
        protected_root=tmp_path / "protected",
        pending_root=tmp_path / "pending",
    )

    config = load_config(settings)

    assert config.storage_paths.public.is_dir()
    assert config.storage_paths.protected.is_dir()
    assert config.storage_paths.pending.is_dir()
    assert "assets" in inspect(config.engine).get_table_names()
