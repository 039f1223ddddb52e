from __future__ import annotations

from fastapi import FastAPI, Request

from app.config import settings
from app.services.session_service import SessionStore


def install_shopping_session_middleware(app: FastAPI, store: SessionStore) -> None:
    @app.middleware('http')
    async def shopping_session_middleware(request: Request, call_next):
        token = request.cookies.get(settings.session_cookie_name)
        shopping_session = store.load(token)
        if shopping_session is None:
            shopping_session = store.create()
        request.state.shopping_session = shopping_session

        response = await call_next(request)
        if token != shopping_session.token:
            response.set_cookie(
                key=settings.session_cookie_name,
                value=shopping_session.token,
                httponly=True,
                secure=settings.session_cookie_secure,
                samesite=settings.session_cookie_samesite,
                max_age=settings.session_ttl_minutes * 60,
            )
        return response
