from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: the authenticated user of the front end.

    Note: Identity comes from the session bootstrap; this subsystem never edits it.
    """

    user_id: int
    username: str
    role: Role
    is_verified: bool = True

    @property
    def is_monitor(self) -> bool:
        return self.role == Role.MONITOR

    @classmethod
    def from_session(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            user_id=int(data["user_id"]),
            username=str(data.get("username") or ""),
            role=Role(data["role"]),
            is_verified=bool(data.get("is_verified", True)),
        )
