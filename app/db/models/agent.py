from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.db.session import Base, utcnow


class Agent(Base):
    __tablename__ = "agents"

    # Identity issued by the auth collaborator
    id = Column(String(64), primary_key=True)
    is_online = Column(Boolean, default=False, nullable=False)
    connection_id = Column(String, nullable=True)
    last_active_at = Column(DateTime(timezone=True), nullable=True)

    active_complaints = relationship(
        "AgentActiveComplaint",
        order_by="AgentActiveComplaint.id",
        cascade="all, delete-orphan",
        back_populates="agent",
    )


class AgentActiveComplaint(Base):
    __tablename__ = "agent_active_complaints"

    id = Column(Integer, primary_key=True, index=True)
    agent_id = Column(String(64), ForeignKey("agents.id"), index=True, nullable=False)
    # Unique: a complaint is bound to at most one agent
    complaint_id = Column(Integer, ForeignKey("complaints.id"), unique=True, nullable=False)
    assigned_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    agent = relationship("Agent", back_populates="active_complaints")
