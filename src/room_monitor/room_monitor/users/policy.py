from __future__ import annotations

from typing import Optional

from ..core.constants import MONITOR_ONLY_MESSAGE
from ..core.enums import Role
from .model import User


def room_access_denial(user: Optional[User]) -> Optional[str]:
    """Return why ``user`` may not perform room entry/exit, or None when allowed.

    Every entry point of the access controller goes through this check before
    any network call.
    """
    if user is None:
        return MONITOR_ONLY_MESSAGE

    if user.role is Role.MONITOR:
        return None
    if user.role is Role.ADMIN:
        return MONITOR_ONLY_MESSAGE
    raise AssertionError(f"Unhandled role: {user.role!r}")
