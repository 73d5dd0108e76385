from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from ..common.datetime_utils import now_utc
from ..core.constants import NO_INFORMATION_REASON, NO_SCHEDULE_MESSAGE, VALIDATION_ERROR_REASON
from ..core.enums import AccessKind
from ..core.exceptions import BackendRejection, TransportError
from ..backend.gateway import RoomBackend
from ..schedules.model import AccessDecision, RoomAccessInfo, Schedule, ScheduleInfo, schedules_from_payload

logger = logging.getLogger(__name__)

# Anything the gateway or the payload mapping can raise. The validator turns all
# of them into a denial.
_FAILURES = (TransportError, BackendRejection, ValueError, TypeError, KeyError)


def _schedule_or_none(data: Any, room_id: int) -> Optional[Schedule]:
    if not isinstance(data, Mapping):
        return None
    return Schedule.from_payload(data, room_id=room_id)


class ScheduleAccessValidator:
    """Read-only questions about schedule-based room access.

    Every method is fail-closed: errors resolve to a denial, never to an exception.
    """

    def __init__(self, backend: RoomBackend, *, clock: Callable[[], datetime] = now_utc):
        self._backend = backend
        self._clock = clock

    async def validate_access(
        self, room_id: int, kind: AccessKind, at_time: Optional[datetime] = None
    ) -> AccessDecision:
        try:
            payload = await self._backend.validate_room_access(
                room_id=room_id, access_type=AccessKind(kind), access_datetime=at_time
            )
            if not isinstance(payload, Mapping):
                raise ValueError("unexpected validation payload")

            granted = payload.get("access_granted") is True
            reason = payload.get("reason") or ("" if granted else NO_SCHEDULE_MESSAGE)
            return AccessDecision(
                granted=granted,
                reason=reason,
                schedule=_schedule_or_none(payload.get("schedule"), room_id),
            )
        except _FAILURES as exc:
            logger.warning("Access validation for room %s (%s) failed: %s", room_id, kind, exc)
            return AccessDecision(granted=False, reason=VALIDATION_ERROR_REASON)

    async def can_access_room(self, room_id: int) -> RoomAccessInfo:
        try:
            payload = await self._backend.get_room_access(room_id=room_id)
            if not isinstance(payload, Mapping):
                raise ValueError("unexpected room access payload")

            return RoomAccessInfo(
                can_access=payload.get("canAccess") is True,
                reason=payload.get("reason") or NO_INFORMATION_REASON,
                schedule=_schedule_or_none(payload.get("schedule"), room_id),
            )
        except _FAILURES as exc:
            logger.warning("Room access check for room %s failed: %s", room_id, exc)
            return RoomAccessInfo(can_access=False, reason=VALIDATION_ERROR_REASON)

    async def get_my_schedules(self) -> list[Schedule]:
        try:
            return schedules_from_payload(await self._backend.get_my_schedules())
        except _FAILURES as exc:
            logger.warning("Could not load schedules: %s", exc)
            return []

    async def current_schedule_info(self, now: Optional[datetime] = None) -> ScheduleInfo:
        now = now or self._clock()
        try:
            schedules = schedules_from_payload(await self._backend.get_my_schedules())
        except _FAILURES as exc:
            logger.warning("Could not load current schedule: %s", exc)
            return ScheduleInfo(has_active_schedule=False, message="Error al obtener información del turno")

        active = next((s for s in schedules if s.contains(now)), None)
        if active is None:
            return ScheduleInfo(has_active_schedule=False, message="No tienes un turno activo en este momento")
        return ScheduleInfo(
            has_active_schedule=True,
            message=f"Tienes un turno activo en {active.room_name or 'la sala asignada'}",
            schedule=active,
        )
