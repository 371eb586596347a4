from .agent import Agent, AgentActiveComplaint
from .complaint import Complaint
from .message import Message
from .service_response import ServiceResponse

__all__ = ["Agent", "AgentActiveComplaint", "Complaint", "Message", "ServiceResponse"]
