from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Sender(str, Enum):
    CUSTOMER = "customer"
    SERVICE = "service"


class ChatMessageResponse(BaseModel):
    id: int
    complaint_id: int
    sender: Sender
    sender_id: str
    content: str
    timestamp: datetime
