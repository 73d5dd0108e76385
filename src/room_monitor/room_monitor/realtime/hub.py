from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from ..core.exceptions import RelayError
from .bus import Listener, LocalEventBus, Subscription
from .events import Event, EventChannel, RELAY_KEYS
from .relay import CrossProcessRelay

logger = logging.getLogger(__name__)


class RealtimeEventBus:
    """Publishes on two paths: the local broadcaster and the cross-process relay.

    The relay never notifies its own writer, so a publish always dispatches
    locally as well. Records arriving from other processes are dispatched
    locally only.
    """

    def __init__(
        self,
        relay: Optional[CrossProcessRelay] = None,
        *,
        local: Optional[LocalEventBus] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._local = local or LocalEventBus()
        self._relay = relay
        self._clock = clock
        self.origin = relay.origin if relay is not None else uuid4().hex
        if relay is not None:
            relay.set_listener(self._on_relay_record)

    @property
    def local(self) -> LocalEventBus:
        return self._local

    def subscribe(self, channel: EventChannel, listener: Listener) -> Subscription:
        return self._local.subscribe(channel, listener)

    def unsubscribe(self, channel: EventChannel, listener: Listener) -> bool:
        return self._local.unsubscribe(channel, listener)

    def publish(self, channel: EventChannel, payload: Optional[Mapping[str, Any]] = None) -> Event:
        event = Event(
            channel=EventChannel(channel),
            payload=dict(payload or {}),
            timestamp=int(self._clock() * 1000),
            origin=self.origin,
        )
        self._local.dispatch(event)

        if self._relay is not None:
            try:
                self._relay.write(event.relay_key, event.to_record())
            except RelayError as exc:
                logger.warning("Could not relay %s to other processes: %s", event.channel.value, exc)
        return event

    def _on_relay_record(self, key: str, record: dict) -> None:
        try:
            event = Event.from_record(record, relayed=True)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed relay record under %s: %s", key, exc)
            return
        if event.origin == self.origin:
            return
        self._local.dispatch(event)

    def pump(self) -> int:
        """Pull pending cross-process records into local listeners."""
        if self._relay is None:
            return 0
        try:
            return self._relay.poll()
        except RelayError as exc:
            logger.warning("Relay poll failed: %s", exc)
            return 0

    def last_record(self, channel: EventChannel) -> Optional[dict]:
        if self._relay is None:
            return None
        return self._relay.read(RELAY_KEYS[EventChannel(channel)])

    def close(self) -> None:
        if self._relay is not None:
            self._relay.set_listener(None)
