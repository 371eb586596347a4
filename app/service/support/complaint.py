from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select

import app.config.config as configs
from app.db.models import Complaint, ServiceResponse
from app.db.session import utcnow
from app.model.auth.principal import Principal, Role
from app.model.complaint.complaint_request import ComplaintRequest
from app.model.complaint.complaint_response import ComplaintResponse
from app.model.complaint.complaint_status import BOUND_STATUSES, ComplaintStatus
from app.service.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    persistence_guard,
)
from app.service.support.assignment import AssignmentEngine, lock_complaint, release

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    complaint: ComplaintResponse
    # Agent whose capacity was freed by the transition, if any
    released_agent_id: Optional[str] = None


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    now = now or utcnow()
    if period == "today":
        return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    if period == "week":
        return now - timedelta(weeks=1)
    if period == "month":
        return now - timedelta(days=30)
    if period == "all":
        return None
    raise ValidationError(
        f"period must be one of {', '.join(configs.PERFORMANCE_PERIODS)}", "INVALID_PERIOD"
    )


class ComplaintLifecycle:
    """pending -> assigned -> in-progress -> resolved, with closed reachable from any open state."""

    def __init__(self, engine: AssignmentEngine):
        self.engine = engine

    @persistence_guard("create complaint")
    def create(self, user_id: str, req: ComplaintRequest) -> ComplaintResponse:
        with self.engine.lock, self.engine.session_scope() as db:
            complaint = Complaint(
                order_id=req.order_id,
                user_id=user_id,
                subject=req.subject,
                description=req.description,
                requires_live_chat=req.requires_live_chat,
                status=ComplaintStatus.PENDING.value,
            )
            db.add(complaint)
            db.flush()
            logger.info("complaint=%s created by user=%s live_chat=%s", complaint.id, user_id, req.requires_live_chat)
            return ComplaintResponse.model_validate(complaint)

    @persistence_guard("resolve complaint")
    def resolve(self, complaint_id: int, principal: Principal) -> Transition:
        with self.engine.lock, self.engine.session_scope() as db:
            complaint = lock_complaint(db, complaint_id)
            if complaint is None:
                raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")
            if complaint.status == ComplaintStatus.RESOLVED.value:
                raise ConflictError("Complaint is already resolved", "COMPLAINT_ALREADY_RESOLVED")
            if complaint.assigned_to != principal.id:
                raise ForbiddenError("This complaint is not assigned to you", "COMPLAINT_NOT_ASSIGNED")

            released = release(db, complaint)
            complaint.status = ComplaintStatus.RESOLVED.value
            complaint.updated_at = utcnow()
            db.flush()
            logger.info("complaint=%s resolved by agent=%s", complaint.id, principal.id)
            return Transition(ComplaintResponse.model_validate(complaint), released)

    @persistence_guard("close complaint")
    def close(self, complaint_id: int, principal: Principal) -> Transition:
        with self.engine.lock, self.engine.session_scope() as db:
            complaint = lock_complaint(db, complaint_id)
            if complaint is None:
                raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")
            if complaint.status == ComplaintStatus.CLOSED.value:
                raise ConflictError("Complaint is already closed", "COMPLAINT_ALREADY_CLOSED")

            allowed = (
                principal.role is Role.ADMIN
                or (principal.role is Role.CUSTOMER and complaint.user_id == principal.id)
                or (principal.role is Role.SERVICE and complaint.assigned_to == principal.id)
            )
            if not allowed:
                raise ForbiddenError("You do not have permission to close this complaint")

            released = None
            if complaint.status in BOUND_STATUSES:
                released = release(db, complaint)
            complaint.status = ComplaintStatus.CLOSED.value
            complaint.updated_at = utcnow()
            db.flush()
            logger.info("complaint=%s closed by %s=%s", complaint.id, principal.role.value, principal.id)
            return Transition(ComplaintResponse.model_validate(complaint), released)

    @persistence_guard("get customer complaints")
    def customer_complaints(self, user_id: str) -> list[ComplaintResponse]:
        with self.engine.session_scope() as db:
            rows = db.execute(
                select(Complaint)
                .where(Complaint.user_id == user_id)
                .order_by(Complaint.created_at.desc(), Complaint.id.desc())
            ).scalars()
            return [ComplaintResponse.model_validate(row) for row in rows]

    @persistence_guard("get service complaints")
    def agent_complaints(self, agent_id: str) -> list[ComplaintResponse]:
        with self.engine.session_scope() as db:
            rows = db.execute(
                select(Complaint)
                .where(Complaint.assigned_to == agent_id, Complaint.status.in_(BOUND_STATUSES))
                .order_by(Complaint.updated_at.desc(), Complaint.id.desc())
            ).scalars()
            return [ComplaintResponse.model_validate(row) for row in rows]

    @persistence_guard("get performance stats")
    def performance(self, service_id: str, period: str = "all") -> int:
        """Number of ledger rows for the agent since the start of `period`."""
        start = period_start(period)
        query = select(func.count(ServiceResponse.id)).where(ServiceResponse.service_id == service_id)
        if start is not None:
            query = query.where(ServiceResponse.timestamp >= start)
        with self.engine.session_scope() as db:
            return int(db.execute(query).scalar_one())
