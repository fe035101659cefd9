"""Asset lifecycle events.

Listeners subscribe by event name and are invoked synchronously after the
change they describe has been committed. A failing listener is logged and
never undoes or fails the operation that fired the event.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, ClassVar

import structlog

if TYPE_CHECKING:
    from .assets.asset_models import Asset, AssetVariant, OwnerRef

logger = structlog.get_logger(__name__)


@dataclass(slots=True, frozen=True)
class AssetEvent:
    name: ClassVar[str] = "asset.event"

    asset_id: int


@dataclass(slots=True, frozen=True)
class AssetCreated(AssetEvent):
    name: ClassVar[str] = "asset.created"

    asset: "Asset"
    owner: "OwnerRef"


@dataclass(slots=True, frozen=True)
class AssetUpdated(AssetEvent):
    name: ClassVar[str] = "asset.updated"


@dataclass(slots=True, frozen=True)
class AssetDeleted(AssetEvent):
    name: ClassVar[str] = "asset.deleted"


@dataclass(slots=True, frozen=True)
class VariantCreated(AssetEvent):
    name: ClassVar[str] = "asset.variant_created"

    asset: "Asset"
    variant: "AssetVariant"


Listener = Callable[[AssetEvent], None]


class EventDispatcher:
    """Synchronous name-keyed listener registry."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: type[AssetEvent] | str, listener: Listener) -> Listener:
        name = event if isinstance(event, str) else event.name
        self._listeners[name].append(listener)
        return listener

    def unsubscribe(self, event: type[AssetEvent] | str, listener: Listener) -> None:
        name = event if isinstance(event, str) else event.name
        if listener in self._listeners.get(name, []):
            self._listeners[name].remove(listener)

    def dispatch(self, event: AssetEvent) -> None:
        for listener in list(self._listeners.get(event.name, [])):
            try:
                listener(event)
            except Exception as exc:
                logger.error(
                    "asset.event.listener_failed",
                    event=event.name,
                    asset_id=event.asset_id,
                    error=str(exc),
                )


def dispatch(events: EventDispatcher | None, event: AssetEvent) -> None:
    """Dispatch ``event`` when a dispatcher is configured."""
    if events is not None:
        events.dispatch(event)


__all__ = [
    "AssetCreated",
    "AssetDeleted",
    "AssetEvent",
    "AssetUpdated",
    "EventDispatcher",
    "Listener",
    "VariantCreated",
    "dispatch",
]
