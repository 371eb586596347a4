from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from app.db.session import Base, utcnow


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    complaint_id = Column(Integer, ForeignKey("complaints.id"), index=True, nullable=False)
    # customer | service
    sender = Column(String, nullable=False)
    sender_id = Column(String, nullable=False)
    # AES-256-CBC ciphertext, hex
    encrypted_content = Column(Text, nullable=False)
    iv = Column(String(32), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
