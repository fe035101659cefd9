from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from src.assetvault.assets.asset_models import OwnerRef
from src.assetvault.assets.asset_pipeline import SourceFile
from src.assetvault.security.temp_url_tokens import TemporaryUrlSigner
from src.assetvault.storage.url_generator import AssetUrlGenerator
from tests.mocks.policies import Contracts, Notes

OWNER = OwnerRef(kind="user", id=2)
NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def signer() -> TemporaryUrlSigner:
    return TemporaryUrlSigner("u" * 48, clock=lambda: NOW)


@pytest.fixture()
def urls(signer) -> AssetUrlGenerator:
    return AssetUrlGenerator(signer=signer, public_prefix="/media/")


def test_public_asset_points_at_static_root(urls, pipeline, layout, make_file):
    asset = pipeline.store(SourceFile(make_file("note.txt")), Notes(), OWNER)

    url = urls.url(asset)

    assert url == f"/media/{asset.relative_path}"
    assert (layout.public_root / url.removeprefix("/media/")) == asset.path


def test_public_variant_points_at_variant_file(urls, pipeline, layout, make_file):
    asset = pipeline.store(SourceFile(make_file("note.txt")), Notes(), OWNER)
    variant = asset.metadata.get_variant("upper")

    url = urls.url(asset, "upper", force_download=True)

    assert url.endswith("/variants/note-upper.txt?download=force")
    assert layout.public_root / url.removeprefix("/media/").removesuffix("?download=force") == variant.path


def test_protected_asset_goes_through_routes(urls, pipeline, make_file):
    asset = pipeline.store(SourceFile(make_file("deal.pdf")), Contracts(), OWNER)

    assert urls.url(asset) == f"/assets/{asset.id}/deal.pdf"


def test_unknown_variant_is_rejected(urls, pipeline, make_file):
    asset = pipeline.store(SourceFile(make_file("deal.pdf")), Contracts(), OWNER)

    with pytest.raises(ValueError):
        urls.url(asset, "thumb")


def test_temporary_url_embeds_valid_token(urls, signer, pipeline, make_file):
    asset = pipeline.store(SourceFile(make_file("note.txt")), Notes(), OWNER)

    url = urls.temporary_url(asset, NOW + timedelta(minutes=10), "upper")

    prefix, token, file_name = url.rsplit("/", 2)
    assert prefix == "/assets/temporary"
    assert file_name == "note-upper.txt"
    grant = signer.validate_token(token)
    assert grant.asset_id == asset.id
    assert grant.variant == "upper"
