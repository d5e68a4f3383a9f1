"""Listener registration for sync events."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List

from loguru import logger


class SyncEvent(str, Enum):
    FILES_ADDED = "files-added"
    STATE_CHANGED = "state-changed"


Listener = Callable[..., Any]


@dataclass(eq=False)
class Subscription:
    """Handle returned by EventHub.subscribe."""

    hub: "EventHub"
    event: SyncEvent
    callback: Listener
    active: bool = field(default=True)

    def unsubscribe(self) -> None:
        self.hub.unsubscribe(self)


class EventHub:
    """Keeps a list of listeners per event and calls them in order."""

    def __init__(self):
        self._listeners: Dict[SyncEvent, List[Subscription]] = {event: [] for event in SyncEvent}

    def subscribe(self, event: SyncEvent, callback: Listener) -> Subscription:
        subscription = Subscription(hub=self, event=SyncEvent(event), callback=callback)
        self._listeners[subscription.event].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription.active:
            self._listeners[subscription.event].remove(subscription)
            subscription.active = False

    def listener_count(self, event: SyncEvent) -> int:
        return len(self._listeners[SyncEvent(event)])

    def emit(self, event: SyncEvent, *args: Any) -> None:
        """Call every listener of event. A failing listener is logged and skipped."""
        event = SyncEvent(event)
        for subscription in list(self._listeners[event]):
            try:
                subscription.callback(*args)
            except Exception:
                logger.exception(f"Listener for {event.value} failed")
