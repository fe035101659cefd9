"""Collection policies and their registry."""

from .collection_policy import (
    AuthorizablePolicy,
    CollectionPolicy,
    CollectionRegistry,
    CollectionRules,
    VariantPolicy,
)

__all__ = [
    "AuthorizablePolicy",
    "CollectionPolicy",
    "CollectionRegistry",
    "CollectionRules",
    "VariantPolicy",
]
