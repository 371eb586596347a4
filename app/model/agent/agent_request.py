from pydantic import BaseModel


class StatusRequest(BaseModel):
    is_online: bool
