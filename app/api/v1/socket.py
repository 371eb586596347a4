"""
Websocket transport.

`/ws/support-requests` carries presence and complaint submission,
`/ws/support-chat` carries the per-complaint chat rooms. Frames are JSON
`{"event": ..., "data": ..., "ack": ...}`. A failing event only produces an
`error` frame on the connection that sent it.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

import app.config.config as configs
from app.api.deps import get_socket_principal
from app.client.realtime.connection_manager import ConnectionManager, connection_manager
from app.client.realtime.notifier import Audience
from app.db.session import utcnow
from app.model.auth.principal import Principal, Role
from app.model.chat.chat_request import SendMessageEvent
from app.model.complaint.complaint_request import ComplaintRequest
from app.model.event.socket_frame import SocketFrame
from app.service.exceptions import ForbiddenError, SupportError, ValidationError
from app.service.support.support import SupportService, get_support_service

logger = logging.getLogger(__name__)

socket_router = APIRouter(prefix="/ws")


def get_connection_manager() -> ConnectionManager:
    return connection_manager


@dataclass
class SocketContext:
    service: SupportService
    manager: ConnectionManager
    principal: Principal
    connection_id: str

    async def send(self, event: str, data: Any) -> None:
        await self.manager.emit(event, data, Audience.connection(self.connection_id))

    async def error(self, message: str, error_code: str) -> None:
        await self.send("error", {"message": message, "error_code": error_code})


Handler = Callable[[SocketContext, Any], Awaitable[Any]]


def _complaint_id(data: Any) -> int:
    value = data.get("complaint_id") if isinstance(data, dict) else data
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("complaint_id is required", "COMPLAINT_ID_REQUIRED")


def _parse(model, data: Any):
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
        raise ValidationError(f"Invalid payload: {fields}", "INVALID_PAYLOAD")


# -- support-requests --------------------------------------------------------

async def on_submit_complaint(ctx: SocketContext, data: Any):
    req = _parse(ComplaintRequest, data)
    return await ctx.service.submit_complaint(ctx.principal, req)


REQUEST_HANDLERS: dict[str, Handler] = {
    "submit-complaint": on_submit_complaint,
}


# -- support-chat ------------------------------------------------------------

async def on_join_chat(ctx: SocketContext, data: Any):
    complaint_id = _complaint_id(data)
    # loading the history also checks that the caller may see this complaint
    messages = await ctx.service.chat_history(ctx.principal, complaint_id)
    room = Audience.complaint(complaint_id, exclude=ctx.connection_id)
    ctx.manager.join(ctx.connection_id, room.room)
    await ctx.send("chat-history", {"complaint_id": complaint_id, "messages": messages})
    await ctx.manager.emit(
        "user-joined",
        {"user_id": ctx.principal.id, "role": ctx.principal.role, "timestamp": utcnow()},
        room,
    )


async def on_send_message(ctx: SocketContext, data: Any):
    req = _parse(SendMessageEvent, data)
    return await ctx.service.send_message(ctx.principal, req.complaint_id, req.content)


async def on_resolve_complaint(ctx: SocketContext, data: Any):
    complaint_id = _complaint_id(data)
    if ctx.principal.role is not Role.SERVICE:
        raise ForbiddenError("Unauthorized operation", "SERVICE_ACCESS_REQUIRED")
    complaint = await ctx.service.resolve_complaint(ctx.principal, complaint_id)
    ctx.manager.leave(ctx.connection_id, Audience.complaint(complaint_id).room)
    return complaint


async def on_close_complaint(ctx: SocketContext, data: Any):
    complaint_id = _complaint_id(data)
    complaint = await ctx.service.close_complaint(ctx.principal, complaint_id)
    ctx.manager.leave(ctx.connection_id, Audience.complaint(complaint_id).room)
    return complaint


async def on_leave_chat(ctx: SocketContext, data: Any):
    complaint_id = _complaint_id(data)
    room = Audience.complaint(complaint_id, exclude=ctx.connection_id)
    ctx.manager.leave(ctx.connection_id, room.room)
    await ctx.manager.emit(
        "user-left",
        {"user_id": ctx.principal.id, "role": ctx.principal.role, "timestamp": utcnow()},
        room,
    )


CHAT_HANDLERS: dict[str, Handler] = {
    "join-chat": on_join_chat,
    "send-message": on_send_message,
    "resolve-complaint": on_resolve_complaint,
    "close-complaint": on_close_complaint,
    "leave-chat": on_leave_chat,
}


# -- dispatch ----------------------------------------------------------------

async def dispatch(ctx: SocketContext, handlers: dict[str, Handler], raw: str) -> None:
    try:
        frame = SocketFrame.model_validate_json(raw)
    except PydanticValidationError:
        await ctx.error("Invalid frame", "INVALID_FRAME")
        return

    handler = handlers.get(frame.event)
    if handler is None:
        await ctx.error(f"Unknown event: {frame.event}", "UNKNOWN_EVENT")
        return

    try:
        result = await handler(ctx, frame.data)
    except SupportError as exc:
        await ctx.error(exc.message, exc.error_code)
        if frame.ack is not None:
            await ctx.send("ack", {"ack": frame.ack, "ok": False, "error_code": exc.error_code})
        return
    except Exception:
        logger.exception("socket event=%s failed connection=%s", frame.event, ctx.connection_id)
        await ctx.error(configs.UNAVAILABLE_MESSAGE, "SERVER_ERROR")
        if frame.ack is not None:
            await ctx.send("ack", {"ack": frame.ack, "ok": False, "error_code": "SERVER_ERROR"})
        return

    if frame.ack is not None:
        await ctx.send("ack", {"ack": frame.ack, "ok": True, "data": result})


async def _serve(ctx: SocketContext, websocket: WebSocket, handlers: dict[str, Handler]) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
        raw = message.get("text")
        if raw is None:
            # binary frames carry no event
            await ctx.error("Invalid frame", "INVALID_FRAME")
            continue
        await dispatch(ctx, handlers, raw)


@socket_router.websocket("/support-requests")
async def support_requests(
    websocket: WebSocket,
    service: SupportService = Depends(get_support_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    principal = get_socket_principal(websocket)
    if principal is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_id = manager.register(websocket, principal)
    ctx = SocketContext(service, manager, principal, connection_id)
    logger.info("user=%s connected to support requests", principal.id)

    if principal.role is Role.ADMIN:
        manager.join(connection_id, Audience.admin_room().room)
    elif principal.role is Role.SERVICE:
        manager.join(connection_id, Audience.service_room().room)
        try:
            await service.agent_connected(principal, connection_id)
        except SupportError as exc:
            await ctx.error(exc.message, exc.error_code)

    try:
        await _serve(ctx, websocket, REQUEST_HANDLERS)
    except WebSocketDisconnect:
        logger.info("user=%s left support requests", principal.id)
    finally:
        manager.unregister(connection_id)
        if principal.role is Role.SERVICE:
            try:
                await service.agent_disconnected(principal)
            except SupportError:
                logger.exception("could not mark agent=%s offline", principal.id)


@socket_router.websocket("/support-chat")
async def support_chat(
    websocket: WebSocket,
    service: SupportService = Depends(get_support_service),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    principal = get_socket_principal(websocket)
    if principal is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_id = manager.register(websocket, principal)
    ctx = SocketContext(service, manager, principal, connection_id)
    logger.info("user=%s connected to support chat", principal.id)

    try:
        await _serve(ctx, websocket, CHAT_HANDLERS)
    except WebSocketDisconnect:
        logger.info("user=%s left support chat", principal.id)
    finally:
        manager.unregister(connection_id)
