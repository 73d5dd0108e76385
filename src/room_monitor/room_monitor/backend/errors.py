"""Helpers to turn backend error payloads into user-facing messages."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..core.enums import AccessErrorType
from ..core.exceptions import BackendRejection, TransportError

_MESSAGES = {
    AccessErrorType.SCHEDULE_REQUIRED: (
        "No tienes turno asignado para esta sala. Contacta al administrador para que te asigne un turno."
    ),
    AccessErrorType.TIME_MISMATCH: "El acceso no está permitido en este horario. Verifica que tu turno esté activo.",
    AccessErrorType.ROOM_MISMATCH: "No tienes acceso a esta sala. Verifica que tu turno sea para la sala correcta.",
    AccessErrorType.USER_NOT_FOUND: "Usuario no encontrado. Verifica que estés logueado correctamente.",
}

_TITLES = {
    AccessErrorType.SCHEDULE_REQUIRED: "Sin Turno Asignado",
    AccessErrorType.TIME_MISMATCH: "Horario Incorrecto",
    AccessErrorType.ROOM_MISMATCH: "Sala No Autorizada",
    AccessErrorType.USER_NOT_FOUND: "Usuario No Encontrado",
    AccessErrorType.SERVER_ERROR: "Error de Acceso",
}


@dataclass(frozen=True)
class RoomAccessError:
    type: AccessErrorType
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return _TITLES[self.type]


def extract_message(payload: Any) -> str:
    """Pull the most useful human message out of an error body."""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload.strip()
    if isinstance(payload, list):
        return ", ".join(str(item) for item in payload)
    if isinstance(payload, Mapping):
        for key in ("detail", "error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
        non_field = payload.get("non_field_errors")
        if isinstance(non_field, list) and non_field:
            return ", ".join(str(item) for item in non_field)
        return json.dumps(payload, ensure_ascii=False)
    return str(payload)


def classify_access_error(error: Exception) -> RoomAccessError:
    """Map a gateway failure into one of the known access error types."""
    if isinstance(error, TransportError):
        return RoomAccessError(
            type=AccessErrorType.SERVER_ERROR,
            message="Error de conexión. Verifica tu internet e intenta nuevamente",
        )
    if not isinstance(error, BackendRejection):
        return RoomAccessError(type=AccessErrorType.SERVER_ERROR, message="Error inesperado. Intenta nuevamente")

    data = error.data if isinstance(error.data, Mapping) else {}
    details = data.get("details") if isinstance(data.get("details"), Mapping) else {}
    text = (data.get("error") or error.message or "").lower()

    if "sin turno asignado" in text or details.get("reason") == "schedule_required":
        kind = AccessErrorType.SCHEDULE_REQUIRED
    elif "horario" in text or "tiempo" in text:
        kind = AccessErrorType.TIME_MISMATCH
    elif "sala" in text or "room" in text:
        kind = AccessErrorType.ROOM_MISMATCH
    elif "usuario" in text or "user" in text:
        kind = AccessErrorType.USER_NOT_FOUND
    else:
        return RoomAccessError(
            type=AccessErrorType.SERVER_ERROR,
            message=error.message or "Error del servidor",
            details=details,
        )
    return RoomAccessError(type=kind, message=_MESSAGES[kind], details=details)


def entry_rejection_message(error: BackendRejection) -> str:
    """User message for a rejected register-entry call."""
    if error.status == 400:
        return f"Error de validación: {error.message or 'Acceso denegado'}"
    if error.status == 403:
        return "No tienes permisos para acceder a esta sala"
    if error.status == 404:
        return "Sala no encontrada"
    if error.status == 409:
        return error.message or "La entrada entra en conflicto con el estado actual"
    return "Error al registrar entrada. Verifica tu conexión y permisos."


def exit_rejection_message(error: BackendRejection) -> str:
    if error.status == 403:
        return "No tienes permisos para registrar esta salida"
    if error.status == 404:
        return "Entrada no encontrada"
    return error.message or "Error al registrar salida"
