from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from app.client.realtime.notifier import Audience, Notifier
from app.model.auth.principal import Principal

logger = logging.getLogger(__name__)


class ConnectionManager(Notifier):
    """Registry of live websocket connections and the rooms they joined.

    Delivery is best effort: a send that fails drops the connection.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}
        self._principals: dict[str, Principal] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)

    def register(self, websocket: WebSocket, principal: Principal) -> str:
        connection_id = uuid.uuid4().hex
        self._sockets[connection_id] = websocket
        self._principals[connection_id] = principal
        self.join(connection_id, Audience.connection(connection_id).room)
        self.join(connection_id, Audience.user(principal.id).room)
        return connection_id

    def unregister(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)
        self._principals.pop(connection_id, None)
        for room in list(self._rooms):
            self._rooms[room].discard(connection_id)
            if not self._rooms[room]:
                del self._rooms[room]

    def join(self, connection_id: str, room: str) -> None:
        self._rooms[room].add(connection_id)

    def leave(self, connection_id: str, room: str) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room]

    def members(self, room: str) -> set[str]:
        return set(self._rooms.get(room, ()))

    async def emit(self, event: str, data: Any, audience: Audience) -> None:
        frame = {"event": event, "data": jsonable_encoder(data)}
        for connection_id in self.members(audience.room):
            if connection_id == audience.exclude:
                continue
            websocket = self._sockets.get(connection_id)
            if websocket is None:
                continue
            try:
                await websocket.send_json(frame)
            except Exception:
                logger.exception("dropping connection=%s after failed %s", connection_id, event)
                self.unregister(connection_id)


connection_manager = ConnectionManager()
