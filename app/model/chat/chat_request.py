from pydantic import BaseModel, ConfigDict, Field


class ChatMessageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, description="Plaintext message body")


class SendMessageEvent(ChatMessageRequest):
    complaint_id: int
