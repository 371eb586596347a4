from pydantic import BaseModel, ConfigDict, Field


class ComplaintRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    order_id: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    requires_live_chat: bool = False
