from __future__ import annotations

import logging
import threading
from typing import Optional

from sqlalchemy import select

from app.db.models import Agent
from app.db.session import utcnow
from app.model.agent.agent_response import AgentStatusResponse
from app.service.exceptions import NotFoundError, persistence_guard
from app.service.support.assignment import SessionFactory

logger = logging.getLogger(__name__)


def _status(agent: Agent) -> AgentStatusResponse:
    return AgentStatusResponse(
        id=agent.id,
        is_online=agent.is_online,
        connection_id=agent.connection_id,
        last_active_at=agent.last_active_at,
        active_complaint_ids=[entry.complaint_id for entry in agent.active_complaints],
    )


class PresenceTracker:
    """One presence record per agent. Concurrent sessions overwrite each other."""

    def __init__(self, lock: threading.RLock, session_factory: SessionFactory):
        self.lock = lock
        self.session_scope = session_factory

    @persistence_guard("update online status")
    def set_status(
        self, agent_id: str, is_online: bool, connection_id: Optional[str] = None
    ) -> AgentStatusResponse:
        with self.lock, self.session_scope() as db:
            agent = db.execute(
                select(Agent).where(Agent.id == agent_id).with_for_update()
            ).scalar_one_or_none()
            if agent is None:
                if not is_online:
                    raise NotFoundError("Service representative not found", "AGENT_NOT_FOUND")
                # first connection of an agent the auth gateway already vouched for
                agent = Agent(id=agent_id)
                db.add(agent)

            agent.is_online = is_online
            agent.last_active_at = utcnow()
            if connection_id:
                agent.connection_id = connection_id
            db.flush()
            logger.info("agent=%s is_online=%s connection=%s", agent_id, is_online, connection_id)
            return _status(agent)

    @persistence_guard("get agent status")
    def get_status(self, agent_id: str) -> AgentStatusResponse:
        with self.session_scope() as db:
            agent = db.get(Agent, agent_id)
            if agent is None:
                raise NotFoundError("Service representative not found", "AGENT_NOT_FOUND")
            return _status(agent)
