from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from app.db.session import Base, utcnow


class Complaint(Base):
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, nullable=False)
    # Owning customer
    user_id = Column(String, index=True, nullable=False)
    subject = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    requires_live_chat = Column(Boolean, default=False, nullable=False)
    # pending | assigned | in-progress | resolved | closed
    status = Column(String, default="pending", nullable=False)
    # Agent id; set only while assigned or in-progress
    assigned_to = Column(String, index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
