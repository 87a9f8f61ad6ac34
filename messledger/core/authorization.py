from enum import Enum
from typing import Union

from fastapi import Depends, HTTPException, Request

from messledger.core.errors import PermissionDeniedError
from messledger.deps.auth import require_auth


class Role(Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    COOK = "cook"


RANK = {
    Role.COOK: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
}

_STAFF = frozenset({Role.ADMIN, Role.MANAGER})
_EVERYONE = frozenset({Role.ADMIN, Role.MANAGER, Role.COOK})
_ADMIN = frozenset({Role.ADMIN})

# Checked again inside every mutating service call, not only at the router.
CAPABILITIES = {
    "remittance.write": _STAFF,
    "remittance.confirm": _ADMIN,
    "staff.manage": _ADMIN,
    "staff.pay": _STAFF,
    "inventory.write": _STAFF,
    "consumption.write": _EVERYONE,
    "stock.reconcile": _ADMIN,
    "request.create": _EVERYONE,
    "request.decide": _STAFF,
    "contract.write": _STAFF,
    "data.reset": _ADMIN,
}


def as_role(value: Union[Role, str]) -> Role:
    if isinstance(value, Role):
        return value
    return Role(str(value).lower())


def ensure_capability(role: Union[Role, str], capability: str) -> Role:
    try:
        resolved = as_role(role)
    except ValueError as exc:
        raise PermissionDeniedError(str(role), capability) from exc

    allowed = CAPABILITIES.get(capability)
    if allowed is None:
        raise KeyError(f"Unknown capability: {capability}")
    if resolved not in allowed:
        raise PermissionDeniedError(resolved.value, capability)
    return resolved


def require_role(role: Role):
    def dependency(request: Request, _auth: tuple[str, str] = Depends(require_auth)) -> Role:
        claim_role = getattr(request.state, "role", None)

        try:
            user_role = as_role(claim_role)
        except ValueError as exc:
            raise HTTPException(status_code=403, detail="Invalid role claim") from exc

        if RANK[user_role] < RANK[role]:
            raise HTTPException(status_code=403, detail="Insufficient role")

        return user_role

    return dependency
