from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import Complaint, Message
from app.db.session import utcnow
from app.model.auth.principal import Principal, Role
from app.model.chat.chat_response import ChatMessageResponse, Sender
from app.model.complaint.complaint_response import ComplaintResponse
from app.model.complaint.complaint_status import TERMINAL_STATUSES, ComplaintStatus
from app.service.crypto.chat_encryption import ChatCipher
from app.service.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    persistence_guard,
)
from app.service.support.assignment import SessionFactory, lock_complaint

logger = logging.getLogger(__name__)


def validate_chat_access(complaint: Complaint, principal: Principal) -> None:
    if principal.role is Role.ADMIN:
        return
    if principal.role is Role.CUSTOMER and complaint.user_id != principal.id:
        raise ForbiddenError("You do not have permission to view this chat")
    if principal.role is Role.SERVICE and complaint.assigned_to != principal.id:
        raise ForbiddenError("This complaint is not assigned to you", "COMPLAINT_NOT_ASSIGNED")


def sender_for(principal: Principal) -> Sender:
    return Sender.CUSTOMER if principal.role is Role.CUSTOMER else Sender.SERVICE


@dataclass(frozen=True)
class SentMessage:
    message: ChatMessageResponse
    complaint: ComplaintResponse
    # True when this message moved the complaint from assigned to in-progress
    started: bool


class ChatChannel:
    def __init__(self, cipher: ChatCipher, lock: threading.RLock, session_factory: SessionFactory):
        self.cipher = cipher
        self.lock = lock
        self.session_scope = session_factory

    def _load(self, db: Session, complaint_id: int, for_update: bool = False) -> Complaint:
        if for_update:
            complaint = lock_complaint(db, complaint_id)
        else:
            complaint = db.get(Complaint, complaint_id)
        if complaint is None:
            raise NotFoundError("Complaint not found", "COMPLAINT_NOT_FOUND")
        return complaint

    @persistence_guard("save chat message")
    def save_message(self, complaint_id: int, principal: Principal, content: str) -> SentMessage:
        if not content or not content.strip():
            raise ValidationError("Message content is required", "INVALID_MESSAGE")

        with self.lock, self.session_scope() as db:
            complaint = self._load(db, complaint_id, for_update=True)
            validate_chat_access(complaint, principal)
            if complaint.status in TERMINAL_STATUSES:
                raise ConflictError(f"Complaint is {complaint.status}", "COMPLAINT_NOT_ACTIVE")

            started = False
            if complaint.status == ComplaintStatus.ASSIGNED.value:
                complaint.status = ComplaintStatus.IN_PROGRESS.value
                complaint.updated_at = utcnow()
                started = True

            encrypted = self.cipher.encrypt(content)
            sender = sender_for(principal)
            message = Message(
                complaint_id=complaint.id,
                sender=sender.value,
                sender_id=principal.id,
                encrypted_content=encrypted.encrypted_content,
                iv=encrypted.iv,
                timestamp=utcnow(),
            )
            db.add(message)
            db.flush()

            return SentMessage(
                message=ChatMessageResponse(
                    id=message.id,
                    complaint_id=complaint.id,
                    sender=sender,
                    sender_id=principal.id,
                    content=content,
                    timestamp=message.timestamp,
                ),
                complaint=ComplaintResponse.model_validate(complaint),
                started=started,
            )

    @persistence_guard("get chat history")
    def history(self, complaint_id: int, principal: Principal) -> list[ChatMessageResponse]:
        with self.session_scope() as db:
            complaint = self._load(db, complaint_id)
            validate_chat_access(complaint, principal)

            rows = db.execute(
                select(Message)
                .where(Message.complaint_id == complaint_id)
                .order_by(Message.timestamp, Message.id)
            ).scalars()
            return [
                ChatMessageResponse(
                    id=row.id,
                    complaint_id=row.complaint_id,
                    sender=row.sender,
                    sender_id=row.sender_id,
                    content=self.cipher.decrypt(row.encrypted_content, row.iv),
                    timestamp=row.timestamp,
                )
                for row in rows
            ]
