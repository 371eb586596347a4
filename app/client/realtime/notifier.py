from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

SERVICE_ROOM = "service-room"
ADMIN_ROOM = "admin-room"


@dataclass(frozen=True)
class Audience:
    """Selects who receives an event. Rooms are plain names; see the constructors."""

    room: str
    exclude: str | None = None

    @classmethod
    def user(cls, user_id: str) -> "Audience":
        return cls(f"user-{user_id}")

    @classmethod
    def complaint(cls, complaint_id: int, exclude: str | None = None) -> "Audience":
        return cls(f"complaint-{complaint_id}", exclude=exclude)

    @classmethod
    def connection(cls, connection_id: str) -> "Audience":
        return cls(f"connection-{connection_id}")

    @classmethod
    def service_room(cls) -> "Audience":
        return cls(SERVICE_ROOM)

    @classmethod
    def admin_room(cls) -> "Audience":
        return cls(ADMIN_ROOM)


class Notifier(ABC):
    @abstractmethod
    async def emit(self, event: str, data: Any, audience: Audience) -> None:
        ...
