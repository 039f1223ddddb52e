from __future__ import annotations

from functools import lru_cache

from app.config import settings
from app.services.backend_api import OrderBackend
from app.services.backend_client import BackendClient, ScriptBackendClient


@lru_cache(maxsize=1)
def get_backend_client() -> BackendClient:
    mode = settings.backend_mode.strip().lower()
    if mode == 'script':
        return ScriptBackendClient(url=settings.backend_url or '', timeout_seconds=settings.backend_timeout_seconds)

    from app.db import SessionLocal, engine
    from app.models import Base
    from app.services.local_backend import LocalBackendClient

    Base.metadata.create_all(engine)
    return LocalBackendClient(SessionLocal)


def get_order_backend() -> OrderBackend:
    return OrderBackend(get_backend_client())
