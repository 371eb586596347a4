from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from app.db.session import Base, utcnow


class ServiceResponse(Base):
    """Append-only ledger row written every time an agent takes a complaint."""

    __tablename__ = "service_responses"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(String(64), index=True, nullable=False)
    complaint_id = Column(Integer, ForeignKey("complaints.id"), nullable=False)
    order_id = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
