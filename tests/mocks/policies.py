"""Collection policies shared by the asset tests."""

from __future__ import annotations

from src.assetvault.policies.collection_policy import (
    AuthorizablePolicy,
    CollectionPolicy,
    CollectionRules,
    VariantPolicy,
)


def write_upper(variant, asset) -> None:
    variant.write_file(asset.path.read_bytes().upper())


def write_reversed(variant, asset) -> None:
    variant.write_file(asset.path.read_bytes()[::-1])


def write_nothing(variant, asset) -> None:
    return None


def explode(variant, asset) -> None:
    raise RuntimeError("encoder crashed")


class Photos(CollectionPolicy):
    def definition(self, rules: CollectionRules) -> None:
        rules.allowed_extensions("jpg", "png").max_file_size(5000)


class JpegOnly(CollectionPolicy):
    def definition(self, rules: CollectionRules) -> None:
        rules.allowed_mime_types("image/jpeg")


class Avatar(CollectionPolicy):
    def definition(self, rules: CollectionRules) -> None:
        rules.single_file_collection()


class LatestThree(CollectionPolicy):
    def definition(self, rules: CollectionRules) -> None:
        rules.only_keep_latest(3)


class Contracts(AuthorizablePolicy, CollectionPolicy):
    def definition(self, rules: CollectionRules) -> None:
        rules.allowed_extensions("pdf")

    def authorize(self, asset, principal) -> bool:
        return principal == asset.owner_id


class Notes(VariantPolicy, CollectionPolicy):
    def definition(self, rules: CollectionRules) -> None:
        rules.allowed_extensions("txt")

    def variants(self, variants, asset) -> None:
        variants.asset_variant("upper", write_upper)
        variants.asset_variant("reversed", write_reversed, extension="rev")


class QueuedNotes(Notes):
    def variants(self, variants, asset) -> None:
        super().variants(variants, asset)
        variants.on_queue = True


class BrokenNotes(VariantPolicy, CollectionPolicy):
    def variants(self, variants, asset) -> None:
        variants.asset_variant("broken", explode)


class LazyNotes(VariantPolicy, CollectionPolicy):
    def variants(self, variants, asset) -> None:
        variants.asset_variant("missing", write_nothing)
