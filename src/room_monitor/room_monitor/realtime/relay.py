from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional, Protocol
from uuid import uuid4

from ..core.exceptions import RelayError

logger = logging.getLogger(__name__)

RelayListener = Callable[[str, dict], None]


class CrossProcessRelay(Protocol):
    """Shared key/value store visible to every process of the same deployment.

    Like browser storage events, a write notifies the *other* processes only;
    the writer never hears its own change.
    """

    origin: str

    def write(self, key: str, record: dict) -> None:
        raise NotImplementedError

    def read(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    def set_listener(self, listener: Optional[RelayListener]) -> None:
        raise NotImplementedError

    def poll(self) -> int:
        """Deliver pending notifications from other processes; returns how many were delivered."""
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


def encode_record(record: dict) -> str:
    try:
        return json.dumps(record, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise RelayError(f"Relay record is not JSON serializable: {exc}") from exc


class InMemoryRelayHub:
    """Relay store shared by the relays connected to it (one per simulated process)."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._relays: list["MemoryRelay"] = []

    def connect(self, origin: Optional[str] = None) -> "MemoryRelay":
        relay = MemoryRelay(self, origin or uuid4().hex)
        self._relays.append(relay)
        return relay

    def _store(self, writer: "MemoryRelay", key: str, raw: str) -> None:
        self._values[key] = raw
        for relay in list(self._relays):
            if relay is not writer:
                relay._notify(key, raw)

    def _get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def _disconnect(self, relay: "MemoryRelay") -> None:
        if relay in self._relays:
            self._relays.remove(relay)


class MemoryRelay:
    def __init__(self, hub: InMemoryRelayHub, origin: str):
        self._hub = hub
        self.origin = origin
        self._listener: Optional[RelayListener] = None

    def write(self, key: str, record: dict) -> None:
        self._hub._store(self, key, encode_record(record))

    def read(self, key: str) -> Optional[dict]:
        raw = self._hub._get(key)
        return json.loads(raw) if raw is not None else None

    def set_listener(self, listener: Optional[RelayListener]) -> None:
        self._listener = listener

    def poll(self) -> int:
        # Delivery is immediate on write.
        return 0

    def _notify(self, key: str, raw: str) -> None:
        if self._listener is None:
            return
        record: Any = json.loads(raw)
        self._listener(key, record)

    def close(self) -> None:
        self._listener = None
        self._hub._disconnect(self)
