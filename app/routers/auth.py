from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app.auth import Principal, Role
from app.dependencies import get_shopping_session
from app.errors import OrderingError
from app.services.backend_api import OrderBackend
from app.services.backend_factory import get_order_backend
from app.services.session_service import ShoppingSession

router = APIRouter(prefix='/auth', tags=['auth'])


class LoginBody(BaseModel):
    username: str
    password: str


def _principal_view(principal: Principal | None) -> dict:
    if principal is None:
        return {'authenticated': False}
    return {
        'authenticated': True,
        'id': principal.id,
        'display_name': principal.display_name,
        'role': principal.role.value,
    }


@router.post('/login')
def login(
    body: LoginBody,
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        profile = backend.check_user_login(body.username.strip(), body.password)
    except OrderingError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.message) from exc

    display_name = f'{profile.first_names} {profile.last_names}'.strip()
    shopping_session.sign_in(Principal(id=profile.id, display_name=display_name, role=Role.CUSTOMER))
    return _principal_view(shopping_session.principal)


@router.post('/admin-login')
def admin_login(
    body: LoginBody,
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        profile = backend.check_admin_login(body.username.strip(), body.password)
    except OrderingError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.message) from exc

    display_name = f'{profile.first_names} {profile.last_names}'.strip()
    shopping_session.sign_in(Principal(id=profile.id, display_name=display_name, role=Role.ADMIN))
    return _principal_view(shopping_session.principal)


@router.post('/logout')
def logout(shopping_session: ShoppingSession = Depends(get_shopping_session)):
    shopping_session.sign_out()
    return _principal_view(None)


@router.get('/me')
def me(shopping_session: ShoppingSession = Depends(get_shopping_session)):
    return _principal_view(shopping_session.principal)
