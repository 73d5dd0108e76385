from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_positive_id(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} no es válido") from None
    if number <= 0:
        raise ValidationError(f"{field_name} no es válido")
    return number
