"""Constants and defaults.

Note: Keep constants here to avoid magic numbers and user messages spread across code.
"""

DEFAULT_LATE_GRACE_MINUTES = 5
DEFAULT_RELOAD_MIN_INTERVAL = 1.0
DEFAULT_ENTRIES_PAGE_SIZE = 1000
DEFAULT_HISTORY_LIMIT = 30

# Status codes the backend uses when the caller's view of an entry is stale.
CONFLICT_STATUSES = frozenset({404, 409})

MONITOR_ONLY_MESSAGE = "Solo los monitores pueden acceder a salas"
VALIDATION_ERROR_REASON = "validation error"
NO_SCHEDULE_MESSAGE = "No tienes turno asignado para esta sala"
NO_INFORMATION_REASON = "Sin información"
IN_FLIGHT_MESSAGE = "Ya hay una solicitud en curso"

ENTRY_SUCCESS_MESSAGE = "Entrada registrada exitosamente"
ENTRY_FAILURE_MESSAGE = "Error al registrar entrada. Verifica tu conexión y permisos."
EXIT_SUCCESS_MESSAGE = "Salida registrada exitosamente"
EXIT_FAILURE_MESSAGE = "Error al registrar salida"
NO_ACTIVE_ENTRY_MESSAGE = "No tienes una entrada activa"
