from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Callable, Optional

from ..access.controller import AccessController
from ..access.state_machine import EntryExitStateMachine
from ..access.validator import ScheduleAccessValidator
from ..access.watcher import ActiveEntryWatcher
from ..attendance.service import AttendanceAggregator
from ..attendance.view import AttendanceStatsView
from ..backend.gateway import RoomBackend
from ..common.datetime_utils import now_utc
from ..realtime.hub import RealtimeEventBus
from ..realtime.refresher import DebouncedRefresher
from .model import User

logger = logging.getLogger(__name__)


class MonitorSession:
    """Everything one signed-in user's room view needs, wired to one backend."""

    def __init__(
        self,
        user: User,
        backend: RoomBackend,
        bus: RealtimeEventBus,
        *,
        tz: tzinfo,
        grace_minutes: int,
        reload_min_interval: float,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.user = user
        self.backend = backend
        self.validator = ScheduleAccessValidator(backend, clock=clock)
        self.machine = EntryExitStateMachine(backend, self.validator)
        self.aggregator = AttendanceAggregator(backend, grace_minutes=grace_minutes, tz=tz, clock=clock)
        self.controller = AccessController(
            user, self.validator, self.machine, bus, grace_minutes=grace_minutes, clock=clock
        )
        self.stats_view = AttendanceStatsView(
            bus, self.aggregator, refresher=DebouncedRefresher(reload_min_interval), owner_id=user.user_id
        )
        self.watcher = ActiveEntryWatcher(
            bus, self.machine, refresher=DebouncedRefresher(reload_min_interval), owner_id=user.user_id
        )
        self._initialized = False

    def open(self) -> "MonitorSession":
        # Admins have no entries of their own to watch.
        if self.user.is_monitor:
            self.stats_view.attach()
            self.watcher.attach()
        self.hold()
        return self

    async def ensure_initialized(self) -> None:
        if not self.user.is_monitor:
            return
        if not self._initialized:
            await self.machine.initialize()
            self._initialized = True

    def hold(self) -> None:
        """Between requests, events are only remembered for the next one."""
        self.stats_view.hold()
        self.watcher.hold()

    def release(self) -> None:
        self.stats_view.release()
        self.watcher.release()

    async def settle(self) -> None:
        await self.stats_view.settle()
        await self.watcher.settle()

    def on_visibility_change(self, visible: bool) -> None:
        self.stats_view.on_visibility_change(visible)
        self.watcher.on_visibility_change(visible)

    def on_focus(self) -> None:
        self.stats_view.on_focus()
        self.watcher.on_focus()

    def close(self) -> None:
        self.stats_view.detach()
        self.watcher.detach()
        self.machine.close()


SessionFactory = Callable[[User, Optional[str]], MonitorSession]


class SessionRegistry:
    """One MonitorSession per (user, token); a new token replaces the old session."""

    def __init__(self, factory: SessionFactory):
        self._factory = factory
        self._sessions: dict[int, tuple[Optional[str], MonitorSession]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user: User, token: Optional[str]) -> MonitorSession:
        current = self._sessions.get(user.user_id)
        if current is not None:
            current_token, session = current
            if current_token == token and session.user == user:
                return session
            session.close()

        session = self._factory(user, token).open()
        self._sessions[user.user_id] = (token, session)
        logger.info("Opened room session for user %s", user.user_id)
        return session

    def discard(self, user_id: int) -> bool:
        current = self._sessions.pop(user_id, None)
        if current is None:
            return False
        current[1].close()
        logger.info("Closed room session for user %s", user_id)
        return True
