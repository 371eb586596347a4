from typing import Optional

from fastapi import Header, HTTPException, WebSocket
from pydantic import ValidationError as PydanticValidationError

from app.model.auth.principal import Principal, Role


def build_principal(user_id: Optional[str], role: Optional[str]) -> Optional[Principal]:
    if not user_id or not role:
        return None
    try:
        return Principal(id=user_id, role=Role(role))
    except (ValueError, PydanticValidationError):
        return None


async def get_principal(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=""),
) -> Principal:
    """Identity forwarded by the auth gateway. The core never checks credentials."""
    principal = build_principal(x_user_id, x_user_role)
    if principal is None:
        raise HTTPException(status_code=401, detail="missing or invalid caller identity")
    return principal


def get_socket_principal(websocket: WebSocket) -> Optional[Principal]:
    # browsers cannot set headers on a websocket handshake; fall back to the query string
    user_id = websocket.headers.get("x-user-id") or websocket.query_params.get("user_id")
    role = websocket.headers.get("x-user-role") or websocket.query_params.get("role")
    return build_principal(user_id, role)
