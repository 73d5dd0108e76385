from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..backend.errors import classify_access_error, entry_rejection_message, exit_rejection_message
from ..backend.gateway import RoomBackend
from ..core.constants import (
    CONFLICT_STATUSES,
    ENTRY_FAILURE_MESSAGE,
    ENTRY_SUCCESS_MESSAGE,
    EXIT_FAILURE_MESSAGE,
    EXIT_SUCCESS_MESSAGE,
    IN_FLIGHT_MESSAGE,
    NO_ACTIVE_ENTRY_MESSAGE,
)
from ..core.enums import AccessKind
from ..core.exceptions import BackendRejection, StateConflict, TransportError
from ..rooms.mapping import active_entry_from_payload, created_entry_from_payload
from .model import ActiveEntry, EntryResult, EntryState, NoActiveEntry
from .validator import ScheduleAccessValidator

logger = logging.getLogger(__name__)

_MALFORMED = (ValueError, TypeError, KeyError)


class EntryExitStateMachine:
    """Owns the user's single active entry and its two transitions.

    NoActiveEntry --attempt_entry--> ActiveEntry --attempt_exit--> NoActiveEntry

    Only one register/exit call may be pending at a time; a second attempt made
    meanwhile is a no-op. The backend's answer always wins over local belief:
    conflicts are resolved by refetching "my active entry".
    """

    def __init__(self, backend: RoomBackend, validator: ScheduleAccessValidator):
        self._backend = backend
        self._validator = validator
        self._state: EntryState = NoActiveEntry()
        self._in_flight = False
        self._mutations = 0
        self._closed = False

    @property
    def state(self) -> EntryState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Detach from the owning view; responses arriving later are ignored."""
        self._closed = True

    async def initialize(self) -> EntryState:
        return await self.refresh()

    async def refresh(self) -> EntryState:
        """Re-read the authoritative active entry from the backend.

        A response is dropped when a transition completed while it was pending,
        or when the machine was closed.
        """
        seen = self._mutations
        try:
            entry = active_entry_from_payload(await self._backend.get_my_active_entry())
        except (TransportError, BackendRejection, *_MALFORMED) as exc:
            logger.warning("Could not refresh active entry: %s", exc)
            return self._state

        if self._closed or seen != self._mutations:
            logger.debug("Discarding stale active entry response")
            return self._state

        self._state = ActiveEntry.from_entry(entry) if entry else NoActiveEntry()
        return self._state

    def _apply(self, state: EntryState) -> None:
        if self._closed:
            logger.debug("State machine closed; ignoring transition to %s", state)
            return
        self._state = state
        self._mutations += 1

    async def attempt_entry(self, room_id: int, at_time: Optional[datetime] = None) -> EntryResult:
        if self._in_flight:
            return EntryResult(success=False, message=IN_FLIGHT_MESSAGE, skipped=True)

        current = self._state
        if isinstance(current, ActiveEntry):
            if current.room_id == room_id:
                message = f"Ya tienes una entrada activa en la sala {current.room_label}"
            else:
                message = (
                    f"Debes cerrar la entrada activa en la sala {current.room_label} "
                    "antes de ingresar a otra sala"
                )
            return EntryResult(success=False, message=message)

        self._in_flight = True
        try:
            return await self._enter(room_id, at_time)
        finally:
            self._in_flight = False

    async def _enter(self, room_id: int, at_time: Optional[datetime]) -> EntryResult:
        decision = await self._validator.validate_access(room_id, AccessKind.ENTRY, at_time)
        if not decision.granted:
            return EntryResult(success=False, message=decision.reason, schedule=decision.schedule)

        try:
            payload = await self._backend.register_entry(room_id=room_id, entry_time=at_time)
        except BackendRejection as exc:
            logger.info("Register entry for room %s rejected (%s): %s", room_id, exc.status, exc.message)
            if exc.status in CONFLICT_STATUSES:
                await self._reconcile(StateConflict(exc.message, room_id=room_id))
            return EntryResult(success=False, message=entry_rejection_message(exc), error=classify_access_error(exc))
        except TransportError as exc:
            logger.warning("Register entry for room %s failed: %s", room_id, exc)
            return EntryResult(success=False, message=ENTRY_FAILURE_MESSAGE, error=classify_access_error(exc))

        try:
            entry = created_entry_from_payload(payload)
        except _MALFORMED as exc:
            # The entry exists server-side but we cannot read it: ask again.
            logger.warning("Unreadable register entry response: %s", exc)
            await self._reconcile(StateConflict(str(exc), room_id=room_id))
            if isinstance(self._state, ActiveEntry):
                return EntryResult(success=True, message=ENTRY_SUCCESS_MESSAGE, schedule=decision.schedule)
            return EntryResult(success=False, message=ENTRY_FAILURE_MESSAGE)

        if not entry.room_id:
            entry = replace(entry, room_id=room_id)
        self._apply(ActiveEntry.from_entry(entry))
        logger.info("Entry %s registered in room %s", entry.entry_id, room_id)
        return EntryResult(success=True, message=ENTRY_SUCCESS_MESSAGE, entry=entry, schedule=decision.schedule)

    async def attempt_exit(self, at_time: Optional[datetime] = None) -> EntryResult:
        if self._in_flight:
            return EntryResult(success=False, message=IN_FLIGHT_MESSAGE, skipped=True)

        current = self._state
        if not isinstance(current, ActiveEntry):
            return EntryResult(success=False, message=NO_ACTIVE_ENTRY_MESSAGE)

        self._in_flight = True
        try:
            return await self._exit(current, at_time)
        finally:
            self._in_flight = False

    async def _exit(self, current: ActiveEntry, at_time: Optional[datetime]) -> EntryResult:
        try:
            payload = await self._backend.register_exit(entry_id=current.entry_id, exit_time=at_time)
        except BackendRejection as exc:
            logger.info("Register exit for entry %s rejected (%s): %s", current.entry_id, exc.status, exc.message)
            await self._reconcile(StateConflict(exc.message, entry_id=current.entry_id, room_id=current.room_id))
            return EntryResult(success=False, message=exit_rejection_message(exc))
        except TransportError as exc:
            logger.warning("Register exit for entry %s failed: %s", current.entry_id, exc)
            return EntryResult(success=False, message=EXIT_FAILURE_MESSAGE)

        try:
            entry = created_entry_from_payload(payload)
        except _MALFORMED:
            logger.debug("Exit response for entry %s carried no entry", current.entry_id)
            entry = None

        self._apply(NoActiveEntry())
        logger.info("Entry %s closed", current.entry_id)
        return EntryResult(success=True, message=EXIT_SUCCESS_MESSAGE, entry=entry)

    async def _reconcile(self, conflict: StateConflict) -> None:
        logger.info("Active entry disagrees with backend (%s); refetching", conflict)
        state = await self.refresh()
        logger.info("Active entry reconciled with backend: %s", state)
