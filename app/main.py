from fastapi import Depends, FastAPI

from app.config import settings
from app.errors import OrderingError
from app.logging_config import configure_logging
from app.routers import auth, management, store
from app.security.headers import install_security_headers
from app.security.sessions import install_shopping_session_middleware
from app.services.backend_api import OrderBackend
from app.services.backend_factory import get_order_backend
from app.services.session_service import SessionStore

configure_logging()

app = FastAPI(title='Pollos EMY Ordering')
app.state.sessions = SessionStore(ttl_minutes=settings.session_ttl_minutes)

install_security_headers(app)
install_shopping_session_middleware(app, app.state.sessions)

app.include_router(auth.router)
app.include_router(store.router)
app.include_router(management.router)


@app.get('/healthz')
def healthz(backend: OrderBackend = Depends(get_order_backend)):
    try:
        backend.get_qr_config()
    except OrderingError as exc:
        return {'connected': False, 'message': exc.message}
    return {'connected': True, 'message': 'Connected to the order backend'}
