from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Optional

from .events import Event, EventChannel

logger = logging.getLogger(__name__)

Listener = Callable[[Event], None]


class Subscription:
    """Handle returned by ``subscribe``; also usable as a context manager."""

    def __init__(self, bus: "LocalEventBus", channel: EventChannel, listener: Listener):
        self._bus = bus
        self.channel = channel
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._bus.unsubscribe(self.channel, self.listener)
            self._active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class LocalEventBus:
    """Same-process broadcaster: synchronous delivery, no queuing."""

    def __init__(self) -> None:
        self._listeners: dict[EventChannel, list[Listener]] = defaultdict(list)

    def subscribe(self, channel: EventChannel, listener: Listener) -> Subscription:
        channel = EventChannel(channel)
        self._listeners[channel].append(listener)
        return Subscription(self, channel, listener)

    def unsubscribe(self, channel: EventChannel, listener: Listener) -> bool:
        listeners = self._listeners.get(EventChannel(channel), [])
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def listener_count(self, channel: Optional[EventChannel] = None) -> int:
        if channel is not None:
            return len(self._listeners.get(EventChannel(channel), []))
        return sum(len(items) for items in self._listeners.values())

    def dispatch(self, event: Event) -> int:
        delivered = 0
        for listener in list(self._listeners.get(event.channel, [])):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event.channel.value)
                continue
            delivered += 1
        return delivered
