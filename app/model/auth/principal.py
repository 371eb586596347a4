from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    CUSTOMER = "customer"
    SERVICE = "service"
    ADMIN = "admin"


class Principal(BaseModel):
    """Caller identity as resolved by the upstream auth gateway."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    role: Role
