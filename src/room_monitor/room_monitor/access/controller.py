from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..attendance.factory import ArrivalStrategyFactory
from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AccessKind, ArrivalStatus
from ..realtime.events import EventChannel
from ..realtime.hub import RealtimeEventBus
from ..schedules.model import AccessDecision, RoomAccessInfo, ScheduleInfo
from ..users.model import User
from ..users.policy import room_access_denial
from .model import AccessState, ActiveEntry, EntryResult
from .state_machine import EntryExitStateMachine
from .validator import ScheduleAccessValidator

logger = logging.getLogger(__name__)


class AccessController:
    """Entry point used by a room view.

    Applies the role gate, delegates to the validator and the state machine,
    keeps an ``AccessState`` for display and announces successful transitions
    on the realtime bus.
    """

    def __init__(
        self,
        user: Optional[User],
        validator: ScheduleAccessValidator,
        machine: EntryExitStateMachine,
        bus: RealtimeEventBus,
        *,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        factory: Optional[ArrivalStrategyFactory] = None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._user = user
        self._validator = validator
        self._machine = machine
        self._bus = bus
        self._grace_minutes = int(grace_minutes)
        self._factory = factory or ArrivalStrategyFactory()
        self._clock = clock
        self.state = AccessState()

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def machine(self) -> EntryExitStateMachine:
        return self._machine

    def _denial(self) -> Optional[str]:
        return room_access_denial(self._user)

    async def check_access(self, room_id: int) -> RoomAccessInfo:
        denial = self._denial()
        if denial:
            self.state.has_access = False
            self.state.reason = denial
            self.state.current_schedule = None
            return RoomAccessInfo(can_access=False, reason=denial)

        info = await self._validator.can_access_room(room_id)
        self.state.has_access = info.can_access
        self.state.reason = info.reason
        self.state.current_schedule = info.schedule
        return info

    async def validate_real_time_access(
        self,
        room_id: int,
        kind: AccessKind = AccessKind.ENTRY,
        at_time: Optional[datetime] = None,
    ) -> AccessDecision:
        denial = self._denial()
        if denial:
            return AccessDecision(granted=False, reason=denial)

        decision = await self._validator.validate_access(room_id, kind, at_time)
        self.state.has_access = decision.granted
        self.state.reason = decision.reason
        self.state.current_schedule = decision.schedule
        return decision

    async def has_schedule_in_room(self, room_id: int) -> bool:
        if self._denial():
            return False
        info = await self._validator.can_access_room(room_id)
        return info.can_access

    async def get_schedules_for_room(self, room_id: Optional[int] = None) -> ScheduleInfo:
        """Current schedule info, optionally narrowed to one room."""
        denial = self._denial()
        if denial:
            return ScheduleInfo(has_active_schedule=False, message=denial)

        info = await self._validator.current_schedule_info(self._clock())
        if room_id is not None and info.schedule is not None and info.schedule.room_id != room_id:
            return ScheduleInfo(has_active_schedule=False, message="No tienes un turno activo en esta sala")
        return info

    async def handle_entry(self, room_id: int, at_time: Optional[datetime] = None) -> EntryResult:
        denial = self._denial()
        if denial:
            return EntryResult(success=False, message=denial)

        result = await self._machine.attempt_entry(room_id, at_time)
        if result.skipped:
            return result
        if not result.success:
            self.state.reason = result.message
            return result

        entry = result.entry
        started_at = entry.started_at if entry else (at_time or self._clock())
        self.state.has_access = True
        self.state.reason = ""
        self.state.is_in_room = True
        self.state.current_schedule = result.schedule or self.state.current_schedule
        self.state.last_entry_time = started_at

        warning = self._late_warning(started_at, result)
        self._announce(
            EventChannel.ROOM_ENTRY_ADDED,
            entry_id=entry.entry_id if entry else None,
            room_id=room_id,
            room_name=(entry.room_name if entry else None) or self._room_name(),
        )
        return replace(result, warning=warning) if warning else result

    async def handle_exit(self, room_id: int, at_time: Optional[datetime] = None) -> EntryResult:
        denial = self._denial()
        if denial:
            return EntryResult(success=False, message=denial)

        current = self._machine.state
        if isinstance(current, ActiveEntry) and current.room_id != room_id:
            message = f"Debes seleccionar la sala {current.room_label} para registrar la salida."
            self.state.reason = message
            return EntryResult(success=False, message=message)

        result = await self._machine.attempt_exit(at_time)
        if result.skipped:
            return result
        if not result.success:
            self.state.reason = result.message
            return result

        self.state.is_in_room = False
        self.state.reason = ""
        self.state.last_exit_time = (result.entry.ended_at if result.entry else None) or at_time or self._clock()
        self._announce(
            EventChannel.ROOM_ENTRY_EXITED,
            entry_id=current.entry_id if isinstance(current, ActiveEntry) else None,
            room_id=room_id,
            room_name=current.room_name if isinstance(current, ActiveEntry) else None,
        )
        return result

    def _room_name(self) -> Optional[str]:
        current = self._machine.state
        return current.room_label if isinstance(current, ActiveEntry) else None

    def _late_warning(self, started_at: datetime, result: EntryResult) -> Optional[str]:
        if result.schedule is None:
            return None
        strategy = self._factory.for_arrival(
            started_at=started_at, schedule=result.schedule, grace_minutes=self._grace_minutes
        )
        decision = strategy.decide(started_at=started_at, schedule=result.schedule, grace_minutes=self._grace_minutes)
        if decision.status != ArrivalStatus.LATE:
            return None
        return f"Llegada tarde: {decision.late_minutes} min después del inicio del turno"

    def _announce(
        self,
        channel: EventChannel,
        *,
        entry_id: Optional[int],
        room_id: int,
        room_name: Optional[str],
    ) -> None:
        payload = {
            "id": entry_id,
            "roomId": room_id,
            "roomName": room_name or f"Sala {room_id}",
            "userId": self._user.user_id if self._user else None,
            "userName": self._user.username if self._user else "",
        }
        self._bus.publish(channel, payload)
        self._bus.publish(EventChannel.ROOM_STATS_RELOAD, {"roomId": room_id, "userId": payload["userId"]})
        logger.info("Announced %s for room %s", channel.value, room_id)
