from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class AgentStatusResponse(BaseModel):
    id: str
    is_online: bool
    connection_id: Optional[str] = None
    last_active_at: Optional[datetime] = None
    active_complaint_ids: List[int] = []


class PerformanceResponse(BaseModel):
    service_id: str
    period: str
    responses: int
