from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Request, status

from app.config import settings


class Role(str, Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"


@dataclass
class Principal:
    id: str
    display_name: str
    role: Role


def get_optional_principal(request: Request) -> Principal | None:
    shopping_session = getattr(request.state, "shopping_session", None)
    return shopping_session.principal if shopping_session else None


def get_current_principal(request: Request) -> Principal:
    principal = get_optional_principal(request)
    if not principal:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return principal


def require_role(*allowed: Role):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return principal

    return _dep


def checkout_customer_id(principal: Principal | None) -> str | None:
    # Staff orders carry no customer; anonymous orders carry the guest sentinel.
    if principal is None:
        return str(settings.guest_customer_id)
    if principal.role == Role.ADMIN:
        return None
    return principal.id
