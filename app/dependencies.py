from fastapi import Depends, HTTPException, Request, status

from app.services.backend_api import OrderBackend
from app.services.backend_factory import get_order_backend
from app.services.checkout_service import CheckoutCoordinator
from app.services.notification_service import NotificationDispatcher
from app.services.session_service import ShoppingSession


def get_shopping_session(request: Request) -> ShoppingSession:
    shopping_session = getattr(request.state, 'shopping_session', None)
    if shopping_session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return shopping_session


def get_checkout_coordinator(backend: OrderBackend = Depends(get_order_backend)) -> CheckoutCoordinator:
    return CheckoutCoordinator(backend)


def get_notification_dispatcher(backend: OrderBackend = Depends(get_order_backend)) -> NotificationDispatcher:
    return NotificationDispatcher(backend)
