# app/api/identity.py
# identity is resolved upstream (gateway), these headers carry the result
from fastapi import Header, HTTPException

from app.domain.owner import CartOwner, SessionOwner, UserOwner


def current_owner(
    x_user_id: int | None = Header(None, gt=0),
    x_session_token: str | None = Header(None, min_length=8, max_length=128),
) -> CartOwner:
    if x_user_id is not None:
        return UserOwner(x_user_id)
    if x_session_token:
        return SessionOwner(x_session_token)
    raise HTTPException(status_code=401, detail="Missing user or session identity")


def current_user_id(x_user_id: int | None = Header(None, gt=0)) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def session_token(x_session_token: str | None = Header(None, min_length=8, max_length=128)) -> str | None:
    return x_session_token


def require_admin(x_user_role: str | None = Header(None)) -> None:
    if (x_user_role or "").lower() != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
