from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from messledger.services.auth_service import create_access_token, resolve_pin

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenRequest(BaseModel):
    pin: str


@router.post("/token")
def issue_token(payload: TokenRequest):
    role = resolve_pin(payload.pin)
    if role is None:
        raise HTTPException(status_code=401, detail="Invalid PIN")

    try:
        token = create_access_token(user_id=role, role=role)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "access_token": token,
        "token_type": "bearer",
        "role": role,
    }
