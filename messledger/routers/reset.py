from fastapi import APIRouter, Depends
from pydantic import BaseModel

from messledger.core.authorization import Role, require_role
from messledger.database import SessionLocal
from messledger.services.reset_service import reset_all_data

router = APIRouter(tags=["Admin"])


class ResetRequest(BaseModel):
    confirmed: bool = False


@router.post("/reset")
def reset(payload: ResetRequest, role: Role = Depends(require_role(Role.ADMIN))):
    db = SessionLocal()
    try:
        deleted = reset_all_data(confirmed=payload.confirmed, role=role, db=db)
        db.commit()
        return {"status": "reset", "deleted": deleted}
    finally:
        db.close()
