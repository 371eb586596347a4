from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class SocketFrame(BaseModel):
    event: str = Field(..., min_length=1)
    data: Any = None
    # Present only when the client wants an acknowledgement frame back
    ack: Optional[Union[str, int]] = None
