from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional
from uuid import uuid4

import redis

from ..core.exceptions import RelayError
from .relay import RelayListener, encode_record

logger = logging.getLogger(__name__)


class RedisRelay:
    """Cross-process relay on Redis.

    Each record is stored under ``<prefix>:<key>`` and announced on the
    ``<prefix>:relay`` pub/sub channel. Announcements from this relay's own
    origin are skipped, so the writer must re-broadcast locally.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = "room-monitor",
        origin: Optional[str] = None,
        poll_interval: float = 0.2,
    ):
        self._client = client
        self._prefix = prefix
        self.origin = origin or uuid4().hex
        self._poll_interval = float(poll_interval)
        self._listener: Optional[RelayListener] = None
        self._pubsub: Any = None

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisRelay":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    @property
    def channel(self) -> str:
        return f"{self._prefix}:relay"

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def write(self, key: str, record: dict) -> None:
        raw = encode_record(record)
        envelope = encode_record({"key": key, "origin": self.origin, "record": record})
        try:
            self._client.set(self._key(key), raw)
            self._client.publish(self.channel, envelope)
        except redis.RedisError as exc:
            raise RelayError(f"Redis relay write failed: {exc}") from exc

    def read(self, key: str) -> Optional[dict]:
        try:
            raw = self._client.get(self._key(key))
        except redis.RedisError as exc:
            raise RelayError(f"Redis relay read failed: {exc}") from exc
        return json.loads(raw) if raw else None

    def set_listener(self, listener: Optional[RelayListener]) -> None:
        self._listener = listener

    def _ensure_subscribed(self) -> None:
        if self._pubsub is None:
            self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
            self._pubsub.subscribe(self.channel)

    def poll(self) -> int:
        """Deliver every pending announcement without blocking; returns how many reached the listener."""
        delivered = 0
        try:
            self._ensure_subscribed()
            while True:
                message = self._pubsub.get_message(timeout=0)
                if message is None:
                    return delivered
                delivered += self._handle(message)
        except redis.RedisError as exc:
            self._pubsub = None
            raise RelayError(f"Redis relay poll failed: {exc}") from exc

    def _handle(self, message: dict) -> int:
        if message.get("type") != "message":
            return 0
        try:
            envelope = json.loads(message["data"])
            key, origin, record = envelope["key"], envelope.get("origin"), envelope["record"]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed relay message: %s", exc)
            return 0

        if origin == self.origin or self._listener is None:
            return 0
        self._listener(key, record)
        return 1

    async def run(self, stop: asyncio.Event) -> None:
        """Poll loop for the owning event loop; exits when ``stop`` is set."""
        while not stop.is_set():
            try:
                self.poll()
            except RelayError as exc:
                logger.warning("%s", exc)
            await asyncio.sleep(self._poll_interval)

    def close(self) -> None:
        self._listener = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
