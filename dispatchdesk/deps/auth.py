from fastapi import HTTPException, Request

from dispatchdesk.models.records import Actor
from dispatchdesk.services.auth_service import RoleClaimError, TokenError, decode_actor


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()


def require_auth(request: Request) -> Actor:
    try:
        actor = decode_actor(_bearer_token(request))
    except RoleClaimError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except TokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    # read by the access log middleware
    request.state.actor = actor
    return actor
