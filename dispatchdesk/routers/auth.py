from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from dispatchdesk.core.config import env_str
from dispatchdesk.models.records import Actor, Role
from dispatchdesk.services.auth_service import TokenError, create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])

TOKEN_ENVIRONMENTS = {"dev", "local", "test"}


class DevLogin(BaseModel):
    user_id: str = Field(min_length=1)
    user_name: str = ""
    role: Role


@router.post("/token")
def issue_dev_token(payload: DevLogin):
    """Self-service tokens for local work; production tokens come from the identity provider."""
    if env_str("ENV", "dev").lower() not in TOKEN_ENVIRONMENTS:
        raise HTTPException(status_code=404, detail="Not Found")

    actor = Actor(
        user_id=payload.user_id,
        user_name=payload.user_name or payload.user_id,
        role=payload.role,
    )
    try:
        token = create_access_token(actor)
    except TokenError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {"access_token": token, "token_type": "bearer", "role": actor.role.value}
