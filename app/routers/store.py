from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app.auth import Principal, Role, checkout_customer_id, require_role
from app.dependencies import get_checkout_coordinator, get_notification_dispatcher, get_shopping_session
from app.errors import OrderingError
from app.routers.presenters import cart_view, catalog_item_view, money, notification_view, sale_view
from app.schemas import CatalogItem, EntityId
from app.services.backend_api import OrderBackend
from app.services.backend_factory import get_order_backend
from app.services.checkout_service import CheckoutCoordinator, OutcomeKind
from app.services.notification_service import NotificationDispatcher
from app.services.session_service import ShoppingSession

router = APIRouter(prefix='/store', tags=['store'])
customer_access = require_role(Role.CUSTOMER)


class AddToCartBody(BaseModel):
    item_id: EntityId


class QuantityBody(BaseModel):
    quantity: int


class CheckoutBody(BaseModel):
    payment_method: str


def _bad_request(exc: OrderingError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


def _menu(backend: OrderBackend) -> list[CatalogItem]:
    try:
        return backend.get_menu_items()
    except OrderingError as exc:
        raise _bad_request(exc) from exc


@router.get('/menu')
def menu(
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    cart = shopping_session.cart
    return {'items': [catalog_item_view(item, in_cart=item.id in cart) for item in _menu(backend)]}


@router.get('/cart')
def cart_page(shopping_session: ShoppingSession = Depends(get_shopping_session)):
    return cart_view(shopping_session.cart)


@router.post('/cart/items')
def cart_add(
    body: AddToCartBody,
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    item = next((candidate for candidate in _menu(backend) if candidate.id == body.item_id), None)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Menu item not found')
    if not item.available:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Item is not available')
    shopping_session.cart.add(item)
    return cart_view(shopping_session.cart)


@router.put('/cart/items/{item_id}')
def cart_set_quantity(
    item_id: str,
    body: QuantityBody,
    shopping_session: ShoppingSession = Depends(get_shopping_session),
):
    shopping_session.cart.set_quantity(item_id, body.quantity)
    return cart_view(shopping_session.cart)


@router.delete('/cart/items/{item_id}')
def cart_remove(item_id: str, shopping_session: ShoppingSession = Depends(get_shopping_session)):
    shopping_session.cart.remove(item_id)
    return cart_view(shopping_session.cart)


@router.post('/checkout')
def checkout(
    body: CheckoutBody,
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    coordinator: CheckoutCoordinator = Depends(get_checkout_coordinator),
):
    try:
        outcome = coordinator.checkout(
            shopping_session.cart.snapshot(),
            body.payment_method,
            checkout_customer_id(shopping_session.principal),
        )
    except OrderingError as exc:
        raise _bad_request(exc) from exc

    result = {
        'kind': outcome.kind.value,
        'message': outcome.message,
        'sale_id': outcome.sale_id,
        'total': money(outcome.total),
    }
    if outcome.kind is OutcomeKind.PENDING_APPROVAL:
        result['payment_instruction'] = coordinator.payment_instruction()
    return result


@router.post('/cart/complete')
def purchase_complete(shopping_session: ShoppingSession = Depends(get_shopping_session)):
    return {'destination': shopping_session.complete_purchase()}


@router.get('/orders')
def my_pending_orders(
    principal: Principal = Depends(customer_access),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        orders = backend.get_user_pending_sales(principal.id)
    except OrderingError as exc:
        raise _bad_request(exc) from exc
    orders.sort(key=lambda order: order.date, reverse=True)
    return {'orders': [sale_view(order) for order in orders]}


@router.get('/notifications')
def notifications(
    principal: Principal = Depends(customer_access),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    try:
        batch = dispatcher.fetch_and_consume(principal.id)
    except OrderingError as exc:
        raise _bad_request(exc) from exc
    return {'notifications': [notification_view(notification) for notification in batch]}


@router.get('/notifications/count')
def notifications_count(
    principal: Principal = Depends(customer_access),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    try:
        return {'unread': dispatcher.unread_count(principal.id)}
    except OrderingError as exc:
        raise _bad_request(exc) from exc
