import asyncio

from src.room_monitor.room_monitor.access.model import ActiveEntry, NoActiveEntry
from src.room_monitor.room_monitor.access.state_machine import EntryExitStateMachine
from src.room_monitor.room_monitor.access.validator import ScheduleAccessValidator
from src.room_monitor.room_monitor.core.enums import AccessErrorType
from src.room_monitor.room_monitor.core.exceptions import BackendRejection, TransportError
from tests.fakes import FakeBackend, utc


def _machine(backend):
    return EntryExitStateMachine(backend, ScheduleAccessValidator(backend))


def _scheduled_backend():
    backend = FakeBackend(now=utc(2025, 3, 3, 10))
    backend.add_schedule(1, 3, utc(2025, 3, 3, 9), utc(2025, 3, 3, 12))
    return backend


def test_entry_without_schedule_is_refused():
    backend = FakeBackend()
    machine = _machine(backend)

    result = asyncio.run(machine.attempt_entry(3))

    assert not result.success
    assert "turno" in result.message
    assert isinstance(machine.state, NoActiveEntry)
    assert backend.count("register_entry") == 0


def test_entry_then_exit():
    backend = _scheduled_backend()
    machine = _machine(backend)

    async def scenario():
        entered = await machine.attempt_entry(3)
        assert entered.success
        assert isinstance(machine.state, ActiveEntry)
        assert machine.state.room_id == 3
        exited = await machine.attempt_exit()
        return entered, exited

    entered, exited = asyncio.run(scenario())

    assert entered.message == "Entrada registrada exitosamente"
    assert entered.schedule.schedule_id == 1
    assert exited.success
    assert isinstance(machine.state, NoActiveEntry)
    assert backend.entries[0]["exit_time"] is not None


def test_rapid_double_entry_registers_once():
    backend = _scheduled_backend()
    machine = _machine(backend)

    async def scenario():
        backend.register_gate = asyncio.Event()
        first = asyncio.create_task(machine.attempt_entry(3))
        await asyncio.sleep(0)
        second = await machine.attempt_entry(3)
        backend.register_gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.success
    assert second.skipped and not second.success
    assert backend.count("register_entry") == 1


def test_second_entry_refused_locally():
    backend = _scheduled_backend()
    backend.add_schedule(2, 4, utc(2025, 3, 3, 9), utc(2025, 3, 3, 12))
    machine = _machine(backend)

    async def scenario():
        await machine.attempt_entry(3)
        same = await machine.attempt_entry(3)
        other = await machine.attempt_entry(4)
        return same, other

    same, other = asyncio.run(scenario())

    assert "Ya tienes una entrada activa" in same.message
    assert "antes de ingresar a otra sala" in other.message
    assert backend.count("register_entry") == 1


def test_conflict_on_entry_reconciles_with_backend():
    backend = _scheduled_backend()
    # Opened from another device; this machine has not seen it yet.
    backend.add_entry(50, 3, utc(2025, 3, 3, 9, 30))
    machine = _machine(backend)

    result = asyncio.run(machine.attempt_entry(3))

    assert not result.success
    assert result.message == "Ya tienes una entrada activa"
    assert isinstance(machine.state, ActiveEntry)
    assert machine.state.entry_id == 50
    assert backend.count("get_my_active_entry") == 1


def test_exit_rejection_refetches_active_entry():
    backend = _scheduled_backend()
    machine = _machine(backend)

    async def scenario():
        await machine.attempt_entry(3)
        # Closed elsewhere.
        backend.entries[0]["exit_time"] = "2025-03-03T10:30:00+00:00"
        return await machine.attempt_exit()

    result = asyncio.run(scenario())

    assert not result.success
    assert result.message == "Entrada no encontrada"
    assert isinstance(machine.state, NoActiveEntry)


def test_exit_without_active_entry():
    machine = _machine(FakeBackend())

    result = asyncio.run(machine.attempt_exit())

    assert not result.success
    assert result.message == "No tienes una entrada activa"


def test_transport_error_on_register_keeps_state():
    backend = _scheduled_backend()
    backend.failures["register_entry"] = TransportError("connection reset")
    machine = _machine(backend)

    result = asyncio.run(machine.attempt_entry(3))

    assert not result.success
    assert result.error.type == AccessErrorType.SERVER_ERROR
    assert isinstance(machine.state, NoActiveEntry)


def test_forbidden_entry_is_classified():
    backend = _scheduled_backend()
    backend.failures["register_entry"] = BackendRejection(403, "Usuario sin permisos", {"error": "Sala no autorizada"})
    machine = _machine(backend)

    result = asyncio.run(machine.attempt_entry(3))

    assert result.message == "No tienes permisos para acceder a esta sala"
    assert result.error.type == AccessErrorType.ROOM_MISMATCH


def test_initialize_loads_active_entry():
    backend = FakeBackend()
    backend.add_entry(9, 5, utc(2025, 3, 3, 8), room_name="Lab 5")
    machine = _machine(backend)

    state = asyncio.run(machine.initialize())

    assert state == ActiveEntry(room_id=5, entry_id=9, room_name="Lab 5", started_at=utc(2025, 3, 3, 8))


def test_refresh_failure_keeps_last_state():
    backend = _scheduled_backend()
    machine = _machine(backend)

    async def scenario():
        await machine.attempt_entry(3)
        backend.failures["get_my_active_entry"] = TransportError("down")
        return await machine.refresh()

    state = asyncio.run(scenario())

    assert isinstance(state, ActiveEntry)


def test_stale_refresh_is_discarded():
    backend = _scheduled_backend()
    machine = _machine(backend)

    class SlowActive:
        def __init__(self):
            self.gate = asyncio.Event()

        async def __call__(self):
            await self.gate.wait()
            return {"has_active_entry": False, "active_entry": None}

    async def scenario():
        slow = SlowActive()
        backend.get_my_active_entry = slow
        pending = asyncio.create_task(machine.refresh())
        await asyncio.sleep(0)
        await machine.attempt_entry(3)
        slow.gate.set()
        return await pending

    state = asyncio.run(scenario())

    assert isinstance(state, ActiveEntry)
    assert isinstance(machine.state, ActiveEntry)


def test_closed_machine_ignores_results():
    backend = _scheduled_backend()
    machine = _machine(backend)
    machine.close()

    result = asyncio.run(machine.attempt_entry(3))

    assert result.success
    assert isinstance(machine.state, NoActiveEntry)
