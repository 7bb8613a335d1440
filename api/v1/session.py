from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.auth import InvalidSessionError, create_token, verify_token
from api.v1.schemas import SessionOut

router = APIRouter()

_bearer = HTTPBearer(auto_error=False)


# ───────────────────────── auth dependency ──────────────────
def current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """User id from `Authorization: Bearer <token>`."""
    if creds is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "missing bearer token")
    try:
        return verify_token(creds.credentials)
    except InvalidSessionError as exc:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, f"invalid token: {exc}") from exc


# ───────────────────────── anonymous sign-in ────────────────
@router.post(
    "/anonymous",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Start an anonymous session",
)
async def sign_in_anonymously() -> SessionOut:
    user_id = uuid4().hex
    return SessionOut(user_id=user_id, token=create_token(user_id))
