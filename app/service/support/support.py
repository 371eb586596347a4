from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Optional

from app.client.db.psql import session_scope
from app.client.order.order_client import order_belongs_to
from app.client.queue.waiting_queue import WaitingQueue, build_waiting_queue
from app.client.realtime.connection_manager import connection_manager
from app.client.realtime.notifier import Audience, Notifier
from app.db.session import utcnow
from app.model.agent.agent_response import AgentStatusResponse, PerformanceResponse
from app.model.auth.principal import Principal, Role
from app.model.chat.chat_response import ChatMessageResponse
from app.model.complaint.complaint_request import ComplaintRequest
from app.model.complaint.complaint_response import ComplaintResponse
from app.service.crypto.chat_encryption import ChatCipher
from app.service.exceptions import ForbiddenError, NotFoundError
from app.service.support.assignment import Assignment, AssignmentEngine, SessionFactory
from app.service.support.chat import ChatChannel
from app.service.support.complaint import ComplaintLifecycle
from app.service.support.presence import PresenceTracker

logger = logging.getLogger(__name__)

OrderLookup = Callable[[str, str], Awaitable[bool]]


def require_role(principal: Principal, *roles: Role) -> None:
    if principal.role not in roles:
        allowed = " or ".join(role.value for role in roles)
        raise ForbiddenError(f"{allowed} access required", "ROLE_NOT_ALLOWED")


class SupportService:
    """Entry point for transports.

    Blocking store work runs in a worker thread; events are emitted on the
    notifier once the owning transaction has committed.
    """

    def __init__(
        self,
        notifier: Notifier,
        waiting_queue: Optional[WaitingQueue] = None,
        cipher: Optional[ChatCipher] = None,
        order_lookup: OrderLookup = order_belongs_to,
        session_factory: SessionFactory = session_scope,
    ):
        self.notifier = notifier
        self.lock = threading.RLock()
        self.waiting_queue = waiting_queue if waiting_queue is not None else build_waiting_queue()
        self.engine = AssignmentEngine(self.waiting_queue, self.lock, session_factory)
        self.lifecycle = ComplaintLifecycle(self.engine)
        self.chat = ChatChannel(cipher or ChatCipher(), self.lock, session_factory)
        self.presence = PresenceTracker(self.lock, session_factory)
        self.order_lookup = order_lookup

    # -- complaints -------------------------------------------------------

    async def submit_complaint(self, principal: Principal, req: ComplaintRequest) -> ComplaintResponse:
        require_role(principal, Role.CUSTOMER)
        if not await self.order_lookup(req.order_id, principal.id):
            raise NotFoundError("Order not found", "ORDER_NOT_FOUND")

        complaint = await asyncio.to_thread(self.lifecycle.create, principal.id, req)
        await self.notifier.emit(
            "new-complaint",
            {
                "complaint_id": complaint.id,
                "user_id": principal.id,
                "order_id": complaint.order_id,
                "subject": complaint.subject,
                "requires_live_chat": complaint.requires_live_chat,
            },
            Audience.service_room(),
        )

        assignment = await asyncio.to_thread(self.engine.assign, complaint.id)
        await self._announce(assignment)
        return assignment.complaint

    async def assign_complaint(self, principal: Principal, complaint_id: int) -> ComplaintResponse:
        require_role(principal, Role.ADMIN)
        assignment = await asyncio.to_thread(self.engine.assign, complaint_id)
        await self._announce(assignment)
        return assignment.complaint

    async def resolve_complaint(self, principal: Principal, complaint_id: int) -> ComplaintResponse:
        require_role(principal, Role.SERVICE, Role.ADMIN)
        transition = await asyncio.to_thread(self.lifecycle.resolve, complaint_id, principal)
        complaint = transition.complaint
        await self.notifier.emit(
            "complaint-resolved",
            {"complaint_id": complaint.id, "resolved_by": principal.id, "timestamp": utcnow()},
            Audience.complaint(complaint.id),
        )
        await self._status_to_customer(complaint)
        await self._drain(transition.released_agent_id)
        return complaint

    async def close_complaint(self, principal: Principal, complaint_id: int) -> ComplaintResponse:
        transition = await asyncio.to_thread(self.lifecycle.close, complaint_id, principal)
        complaint = transition.complaint
        await self.notifier.emit(
            "complaint-closed",
            {"complaint_id": complaint.id, "closed_by": principal.id, "timestamp": utcnow()},
            Audience.complaint(complaint.id),
        )
        await self._status_to_customer(complaint)
        await self._drain(transition.released_agent_id)
        return complaint

    async def customer_complaints(self, principal: Principal) -> list[ComplaintResponse]:
        return await asyncio.to_thread(self.lifecycle.customer_complaints, principal.id)

    async def assigned_complaints(self, principal: Principal) -> list[ComplaintResponse]:
        require_role(principal, Role.SERVICE, Role.ADMIN)
        return await asyncio.to_thread(self.lifecycle.agent_complaints, principal.id)

    async def performance(
        self, principal: Principal, period: str = "all", service_id: Optional[str] = None
    ) -> PerformanceResponse:
        require_role(principal, Role.SERVICE, Role.ADMIN)
        target = principal.id
        if service_id and service_id != principal.id:
            require_role(principal, Role.ADMIN)
            target = service_id
        count = await asyncio.to_thread(self.lifecycle.performance, target, period)
        return PerformanceResponse(service_id=target, period=period, responses=count)

    # -- chat -------------------------------------------------------------

    async def chat_history(self, principal: Principal, complaint_id: int) -> list[ChatMessageResponse]:
        return await asyncio.to_thread(self.chat.history, complaint_id, principal)

    async def send_message(self, principal: Principal, complaint_id: int, content: str) -> ChatMessageResponse:
        sent = await asyncio.to_thread(self.chat.save_message, complaint_id, principal, content)
        if sent.started:
            await self._status_to_customer(sent.complaint)
        await self.notifier.emit("new-message", sent.message, Audience.complaint(complaint_id))
        return sent.message

    # -- presence ---------------------------------------------------------

    async def set_online_status(
        self, principal: Principal, is_online: bool, connection_id: Optional[str] = None
    ) -> AgentStatusResponse:
        require_role(principal, Role.SERVICE)
        status = await asyncio.to_thread(self.presence.set_status, principal.id, is_online, connection_id)
        await self.notifier.emit(
            "service-status-change",
            {"service_id": principal.id, "is_online": is_online},
            Audience.admin_room(),
        )
        if is_online:
            await self._drain(principal.id)
        return status

    async def agent_connected(self, principal: Principal, connection_id: str) -> AgentStatusResponse:
        return await self.set_online_status(principal, True, connection_id)

    async def agent_disconnected(self, principal: Principal) -> AgentStatusResponse:
        return await self.set_online_status(principal, False)

    # -- helpers ----------------------------------------------------------

    async def _drain(self, agent_id: Optional[str]) -> None:
        if agent_id is None:
            return
        assignment = await asyncio.to_thread(self.engine.drain, agent_id)
        if assignment is not None:
            await self._announce(assignment)

    async def _announce(self, assignment: Assignment) -> None:
        complaint = assignment.complaint
        if assignment.bound:
            await self.notifier.emit(
                "complaint-assigned",
                {"complaint": complaint},
                Audience.user(assignment.agent_id),
            )
            await self.notifier.emit(
                "new-assignment",
                {"complaint_id": complaint.id, "service_id": assignment.agent_id},
                Audience.service_room(),
            )
        await self._status_to_customer(complaint, queued=assignment.queued)

    async def _status_to_customer(self, complaint: ComplaintResponse, queued: bool = False) -> None:
        await self.notifier.emit(
            "complaint-status",
            {
                "complaint_id": complaint.id,
                "status": complaint.status,
                "assigned_to": complaint.assigned_to,
                "queued": queued,
            },
            Audience.user(complaint.user_id),
        )


@lru_cache(maxsize=1)
def get_support_service() -> SupportService:
    return SupportService(notifier=connection_manager)
