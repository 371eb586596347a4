"""
Complaint to agent binding.

Every read-then-write sequence here runs while holding the shared support lock
and inside a single `session_scope` transaction, selecting the rows it mutates
FOR UPDATE where the database supports it. Two concurrent attempts can therefore
never bind the same complaint twice or give one agent two live chats.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, ContextManager, Optional

from sqlalchemy import case, delete, func, select
from sqlalchemy.orm import Session

from app.client.db.psql import session_scope
from app.client.queue.waiting_queue import WaitingQueue
from app.db.models import Agent, AgentActiveComplaint, Complaint, ServiceResponse
from app.db.session import utcnow
from app.model.complaint.complaint_response import ComplaintResponse
from app.model.complaint.complaint_status import ComplaintStatus
from app.service.exceptions import NotFoundError, persistence_guard

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


@dataclass(frozen=True)
class AgentLoad:
    total: int = 0
    live_chat: int = 0


@dataclass(frozen=True)
class Assignment:
    complaint: ComplaintResponse
    agent_id: Optional[str] = None
    queued: bool = False

    @property
    def bound(self) -> bool:
        return self.agent_id is not None


def lock_complaint(db: Session, complaint_id: int) -> Optional[Complaint]:
    return db.execute(
        select(Complaint).where(Complaint.id == complaint_id).with_for_update()
    ).scalar_one_or_none()


def agent_loads(db: Session, agent_ids: list[str]) -> dict[str, AgentLoad]:
    if not agent_ids:
        return {}
    rows = db.execute(
        select(
            AgentActiveComplaint.agent_id,
            func.count(AgentActiveComplaint.id),
            func.sum(case((Complaint.requires_live_chat.is_(True), 1), else_=0)),
        )
        .join(Complaint, Complaint.id == AgentActiveComplaint.complaint_id)
        .where(AgentActiveComplaint.agent_id.in_(agent_ids))
        .group_by(AgentActiveComplaint.agent_id)
    ).all()
    loads = {agent_id: AgentLoad() for agent_id in agent_ids}
    for agent_id, total, live_chat in rows:
        loads[agent_id] = AgentLoad(total=int(total), live_chat=int(live_chat or 0))
    return loads


def release(db: Session, complaint: Complaint) -> Optional[str]:
    """Drop the complaint from its agent's active set. Returns the freed agent id."""
    agent_id = complaint.assigned_to
    db.execute(delete(AgentActiveComplaint).where(AgentActiveComplaint.complaint_id == complaint.id))
    complaint.assigned_to = None
    return agent_id


class AssignmentEngine:
    def __init__(
        self,
        waiting_queue: WaitingQueue,
        lock: Optional[threading.RLock] = None,
        session_factory: SessionFactory = session_scope,
    ):
        self.waiting_queue = waiting_queue
        self.lock = lock or threading.RLock()
        self.session_scope = session_factory

    @persistence_guard("assign complaint")
    def assign(self, complaint_id: int) -> Assignment:
        """Bind a pending complaint to the least loaded eligible agent.

        Live-chat complaints that find no agent free of live chats go to the
        waiting queue. Other complaints stay pending when nobody is online.
        """
        with self.lock, self.session_scope() as db:
            complaint = lock_complaint(db, complaint_id)
            if complaint is None:
                raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")
            if complaint.status != ComplaintStatus.PENDING.value:
                raise NotFoundError("Complaint not found or not pending", "COMPLAINT_NOT_PENDING")

            agent = self._pick_agent(db, complaint.requires_live_chat)
            if agent is None:
                queued = False
                if complaint.requires_live_chat:
                    self.waiting_queue.push(complaint.id)
                    queued = True
                    logger.info(
                        "no live-chat agent free, queued complaint=%s queue_length=%s",
                        complaint.id,
                        len(self.waiting_queue),
                    )
                else:
                    logger.info("no agent online, complaint=%s stays pending", complaint.id)
                return Assignment(ComplaintResponse.model_validate(complaint), queued=queued)

            self.bind(db, complaint, agent)
            return Assignment(ComplaintResponse.model_validate(complaint), agent_id=agent.id)

    @persistence_guard("drain waiting queue")
    def drain(self, agent_id: str) -> Optional[Assignment]:
        """Give the oldest still-waiting live-chat complaint to `agent_id`.

        Stale entries (missing, no longer pending, not live chat) are discarded.
        An agent already holding a live chat leaves the queue untouched. The
        bound entry leaves the queue only after its transaction has committed,
        so a failed bind keeps the complaint waiting at the front.
        """
        with self.lock:
            with self.session_scope() as db:
                agent = db.execute(
                    select(Agent).where(Agent.id == agent_id).with_for_update()
                ).scalar_one_or_none()
                if agent is None or not agent.is_online:
                    return None
                # checked before touching the queue so a busy agent never reorders it
                if agent_loads(db, [agent.id])[agent.id].live_chat > 0:
                    logger.info("agent=%s busy with a live chat, queue left as is", agent.id)
                    return None

                while True:
                    complaint_id = self.waiting_queue.peek()
                    if complaint_id is None:
                        return None

                    complaint = lock_complaint(db, complaint_id)
                    if (
                        complaint is None
                        or complaint.status != ComplaintStatus.PENDING.value
                        or not complaint.requires_live_chat
                    ):
                        logger.info("discarding stale queue entry complaint=%s", complaint_id)
                        self.waiting_queue.pop()
                        continue

                    self.bind(db, complaint, agent)
                    assignment = Assignment(ComplaintResponse.model_validate(complaint), agent_id=agent.id)
                    break

            self.waiting_queue.pop()
            logger.info("drained complaint=%s to agent=%s", assignment.complaint.id, agent_id)
            return assignment

    def bind(self, db: Session, complaint: Complaint, agent: Agent) -> None:
        now = utcnow()
        complaint.status = ComplaintStatus.ASSIGNED.value
        complaint.assigned_to = agent.id
        complaint.updated_at = now
        db.add(AgentActiveComplaint(agent_id=agent.id, complaint_id=complaint.id, assigned_at=now))
        db.add(
            ServiceResponse(
                service_id=agent.id,
                complaint_id=complaint.id,
                order_id=complaint.order_id,
                timestamp=now,
            )
        )
        db.flush()
        logger.info("assigned complaint=%s to agent=%s", complaint.id, agent.id)

    def _pick_agent(self, db: Session, live_chat: bool) -> Optional[Agent]:
        online = list(
            db.execute(
                select(Agent).where(Agent.is_online.is_(True)).order_by(Agent.id).with_for_update()
            ).scalars()
        )
        if not online:
            return None

        loads = agent_loads(db, [agent.id for agent in online])
        candidates = online
        if live_chat:
            candidates = [agent for agent in online if loads[agent.id].live_chat == 0]
        if not candidates:
            return None
        # min() keeps the first of equal loads, so ties go to the lowest agent id
        return min(candidates, key=lambda agent: loads[agent.id].total)
