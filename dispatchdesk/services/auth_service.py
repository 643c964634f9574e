"""
Bearer tokens for back-office staff.

A token names the user and the single role they act under; segregation of
duties is decided from that role alone, so the role claim is mandatory.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from dispatchdesk.core.config import env_int, env_str
from dispatchdesk.models.records import Actor, Role

JWT_ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32


class TokenError(ValueError):
    pass


class RoleClaimError(TokenError):
    pass


def _signing_key() -> str:
    secret = env_str("JWT_SECRET", "")
    if len(secret) < MIN_SECRET_LENGTH:
        raise TokenError(f"JWT_SECRET must be set to at least {MIN_SECRET_LENGTH} characters")
    return secret


def token_lifetime() -> timedelta:
    # One working shift by default.
    return timedelta(hours=env_int("JWT_EXP_HOURS", 8))


def create_access_token(actor: Actor, *, now: Optional[datetime] = None) -> str:
    issued = now or datetime.now(timezone.utc)
    claims = {
        "sub": actor.user_id,
        "name": actor.user_name,
        "role": actor.role.value,
        "iat": issued,
        "exp": issued + token_lifetime(),
    }
    return jwt.encode(claims, _signing_key(), algorithm=JWT_ALGORITHM)


def decode_actor(token: str) -> Actor:
    """Verify the signature and expiry and rebuild the acting user."""
    try:
        claims = jwt.decode(token, _signing_key(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        raise TokenError("Invalid or expired token") from exc

    user_id = claims.get("sub")
    if not user_id:
        raise TokenError("Token has no subject")

    try:
        role = Role(str(claims.get("role", "")).upper())
    except ValueError as exc:
        raise RoleClaimError(f"Unknown role: {claims.get('role')!r}") from exc

    return Actor(user_id=str(user_id), user_name=str(claims.get("name") or user_id), role=role)
