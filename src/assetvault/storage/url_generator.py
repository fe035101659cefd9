"""URLs for committed assets.

Public assets map straight onto the static mount of the public root.
Protected assets go through the ``/assets`` routes, which run the
collection's authorization check. Temporary URLs carry a signed token and
work for both.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

from ..assets.asset_models import Asset, AssetVariant
from ..security.temp_url_tokens import TemporaryUrlSigner


@dataclass(slots=True)
class AssetUrlGenerator:
    signer: TemporaryUrlSigner
    public_prefix: str = "/media"
    route_prefix: str = "/assets"

    def url(self, asset: Asset, variant_name: str | None = None, *, force_download: bool = False) -> str:
        if asset.is_protected:
            if variant_name:
                variant = self._variant(asset, variant_name)
                path = f"{asset.id}/variant/{quote(variant_name)}/{quote(variant.file_name)}"
            else:
                path = f"{asset.id}/{quote(asset.file_name)}"
            return self._finish(f"{self.route_prefix.rstrip('/')}/{path}", force_download)

        if variant_name:
            variant = self._variant(asset, variant_name)
            relative = f"{variant.relative_dir}/{variant.file_name}"
        else:
            relative = asset.relative_path
        return self._finish(f"{self.public_prefix.rstrip('/')}/{quote(relative.lstrip('/'))}", force_download)

    def temporary_url(
        self,
        asset: Asset,
        expiration: datetime,
        variant_name: str | None = None,
        *,
        force_download: bool = False,
    ) -> str:
        file_name = self._variant(asset, variant_name).file_name if variant_name else asset.file_name
        token = self.signer.create_token(asset.id, expiration, variant_name)
        path = f"{self.route_prefix.rstrip('/')}/temporary/{token}/{quote(file_name)}"
        return self._finish(path, force_download)

    @staticmethod
    def _variant(asset: Asset, variant_name: str) -> AssetVariant:
        variant = asset.metadata.get_variant(variant_name)
        if variant is None:
            raise ValueError(f"variant '{variant_name}' does not exist for asset {asset.id}")
        return variant

    @staticmethod
    def _finish(path: str, force_download: bool) -> str:
        return f"{path}?download=force" if force_download else path


__all__ = ["AssetUrlGenerator"]
