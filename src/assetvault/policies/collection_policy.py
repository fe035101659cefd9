"""Collection policies.

A collection is declared by subclassing :class:`CollectionPolicy` and filling
``definition``::

    class Avatars(VariantPolicy, CollectionPolicy):
        def definition(self, rules: CollectionRules) -> None:
            rules.allowed_extensions("jpg", "png").max_file_size(5_000_000)
            rules.single_file_collection()

        def variants(self, variants, asset) -> None:
            variants.asset_variant("thumb", make_thumbnail, extension="webp")

Policies that also inherit :class:`AuthorizablePolicy` are stored under the
protected root and must be authorized before serving.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from ..assets.asset_models import Visibility

if TYPE_CHECKING:
    from ..assets.asset_models import Asset, AssetVariant

VariantCallback = Callable[["AssetVariant", "Asset"], None]

_EXTENSION_RE = re.compile(r"^[a-zA-Z0-9]+$")
_MIME_RE = re.compile(r"^[\w\-+]+/[\w\-+.]+$")


@dataclass(slots=True)
class CollectionRules:
    """Resolved limits of one collection."""

    extensions: tuple[str, ...] = ()
    mime_types: tuple[str, ...] = ()
    max_size: int = 0
    max_items: int = 0
    visibility: Visibility = Visibility.PUBLIC

    def allowed_extensions(self, *extensions: str) -> "CollectionRules":
        cleaned: list[str] = []
        for extension in extensions:
            if not extension:
                raise ValueError("file extension cannot be empty")
            if extension.startswith("."):
                raise ValueError(f"file extension should not start with a dot: {extension}")
            if not _EXTENSION_RE.match(extension):
                raise ValueError(f"invalid file extension: {extension}")
            value = extension.strip().lower()
            if value not in cleaned:
                cleaned.append(value)
        self.extensions = tuple(cleaned)
        return self

    def allowed_mime_types(self, *mime_types: str) -> "CollectionRules":
        cleaned: list[str] = []
        for mime_type in mime_types:
            if not mime_type.strip():
                raise ValueError("MIME type cannot be empty")
            if not _MIME_RE.match(mime_type):
                raise ValueError(f"invalid MIME type: {mime_type}")
            value = mime_type.strip().lower()
            if value not in cleaned:
                cleaned.append(value)
        self.mime_types = tuple(cleaned)
        return self

    def max_file_size(self, size: int) -> "CollectionRules":
        if size < 0:
            raise ValueError("maximum file size must be non-negative")
        self.max_size = size
        return self

    def only_keep_latest(self, count: int) -> "CollectionRules":
        if count < 0:
            raise ValueError("maximum number of items must be non-negative")
        self.max_items = count
        return self

    def single_file_collection(self) -> "CollectionRules":
        return self.only_keep_latest(1)

    @property
    def is_single_file(self) -> bool:
        return self.max_items == 1

    @property
    def is_protected(self) -> bool:
        return self.visibility is Visibility.PROTECTED


class CollectionPolicy:
    """Base class for collection definitions."""

    def __init__(self, *arguments: Any) -> None:
        self.arguments = arguments

    def definition(self, rules: CollectionRules) -> None:
        """Declare the collection limits on ``rules``."""

    @classmethod
    def class_path(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def collection_key(cls) -> str:
        """Opaque identifier stored on asset records."""
        return hashlib.md5(cls.class_path().encode("utf-8")).hexdigest()

    def rules(self) -> CollectionRules:
        rules = CollectionRules()
        self.definition(rules)
        if isinstance(self, AuthorizablePolicy):
            rules.visibility = Visibility.PROTECTED
        return rules


class AuthorizablePolicy:
    """Mixin for collections whose files require an authorization check."""

    def authorize(self, asset: "Asset", principal: Any) -> bool:
        raise NotImplementedError


class VariantPolicy:
    """Mixin for collections that derive named variants."""

    def variants(self, variants: Any, asset: "Asset") -> None:
        """Call ``variants.asset_variant(name, callback, extension)`` per variant."""
        raise NotImplementedError


class CollectionRegistry:
    """Resolve policy classes from their stored collection key."""

    def __init__(self) -> None:
        self._policies: dict[str, type[CollectionPolicy]] = {}

    def register(self, policy_cls: type[CollectionPolicy]) -> type[CollectionPolicy]:
        self._policies[policy_cls.collection_key()] = policy_cls
        return policy_cls

    def __contains__(self, key: str) -> bool:
        return key in self._policies

    def resolve(self, key: str, *arguments: Any) -> CollectionPolicy:
        try:
            policy_cls = self._policies[key]
        except KeyError as exc:
            raise KeyError(f"collection '{key}' is not registered") from exc
        return policy_cls(*arguments)


__all__ = [
    "AuthorizablePolicy",
    "CollectionPolicy",
    "CollectionRegistry",
    "CollectionRules",
    "VariantCallback",
    "VariantPolicy",
]
