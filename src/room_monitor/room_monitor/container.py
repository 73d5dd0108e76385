from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .backend.gateway import RoomBackend
from .backend.http_gateway import HttpRoomBackend
from .common.datetime_utils import get_timezone
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_RELOAD_MIN_INTERVAL
from .realtime.hub import RealtimeEventBus
from .realtime.redis_relay import RedisRelay
from .realtime.relay import CrossProcessRelay
from .users.model import User
from .users.session import MonitorSession, SessionRegistry

logger = logging.getLogger(__name__)

BackendFactory = Callable[[Optional[str]], RoomBackend]


@dataclass(frozen=True)
class Container:
    bus: RealtimeEventBus
    sessions: SessionRegistry
    backend_factory: BackendFactory


def build_container(
    *,
    api_base_url: str,
    api_timeout: float = 10.0,
    redis_url: Optional[str] = None,
    relay_prefix: str = "room-monitor",
    timezone: Optional[str] = None,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    reload_min_interval: float = DEFAULT_RELOAD_MIN_INTERVAL,
    backend_factory: Optional[BackendFactory] = None,
    relay: Optional[CrossProcessRelay] = None,
) -> Container:
    if backend_factory is None:
        def backend_factory(token: Optional[str]) -> RoomBackend:
            return HttpRoomBackend(api_base_url, token=token, timeout=api_timeout)

    if relay is None and redis_url:
        relay = RedisRelay.from_url(redis_url, prefix=relay_prefix)

    bus = RealtimeEventBus(relay)
    # Subscribe now so records written before the first request are not missed.
    bus.pump()

    tz = get_timezone(timezone)

    def session_factory(user: User, token: Optional[str]) -> MonitorSession:
        return MonitorSession(
            user,
            backend_factory(token),
            bus,
            tz=tz,
            grace_minutes=grace_minutes,
            reload_min_interval=reload_min_interval,
        )

    logger.info("Container ready (relay=%s, tz=%s)", type(relay).__name__ if relay else None, tz)
    return Container(bus=bus, sessions=SessionRegistry(session_factory), backend_factory=backend_factory)
