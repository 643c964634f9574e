from fastapi import Depends, HTTPException

from dispatchdesk.deps.auth import require_auth
from dispatchdesk.models.records import ACCOUNTING_ROLES, Actor, Role


def require_role(*roles: Role):
    allowed = frozenset(roles)

    def dependency(actor: Actor = Depends(require_auth)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return actor

    return dependency


require_accounting = require_role(*ACCOUNTING_ROLES)
