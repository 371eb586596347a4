from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.model.complaint.complaint_status import ComplaintStatus


class ComplaintResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: str
    user_id: str
    subject: str
    description: str
    requires_live_chat: bool
    status: ComplaintStatus
    assigned_to: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ComplaintActionResponse(BaseModel):
    message: str
    complaint: ComplaintResponse
