from __future__ import annotations

import base64

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.auth import Principal, Role, require_role
from app.dependencies import get_shopping_session
from app.errors import OrderingError
from app.routers.presenters import report_view, sale_view
from app.services.backend_api import OrderBackend
from app.services.backend_factory import get_order_backend
from app.services.sales_report_service import parse_filter
from app.services.session_service import ShoppingSession

router = APIRouter(prefix='/management', tags=['management'])
admin_access = require_role(Role.ADMIN)


def _bad_request(exc: OrderingError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


@router.get('/pending-orders')
def pending_orders(
    _: Principal = Depends(admin_access),
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    engine = shopping_session.approval_engine(backend)
    try:
        orders = engine.refresh()
        customers = {customer.id: customer for customer in backend.get_users()}
    except OrderingError as exc:
        raise _bad_request(exc) from exc

    rows = []
    for order in orders:
        row = sale_view(
            order,
            customer=customers.get(order.customer_id) if order.customer_id else None,
            include_customer=True,
        )
        row['processing'] = engine.is_processing(order.id)
        rows.append(row)
    return {'orders': rows}


@router.post('/pending-orders/{pending_order_id}/approve')
def approve_pending_order(
    pending_order_id: str,
    _: Principal = Depends(admin_access),
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    engine = shopping_session.approval_engine(backend)
    try:
        sale = engine.approve(pending_order_id)
    except OrderingError as exc:
        raise _bad_request(exc) from exc
    return {'sale': sale_view(sale)}


@router.post('/pending-orders/{pending_order_id}/reject')
def reject_pending_order(
    pending_order_id: str,
    _: Principal = Depends(admin_access),
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    engine = shopping_session.approval_engine(backend)
    try:
        engine.reject(pending_order_id)
    except OrderingError as exc:
        raise _bad_request(exc) from exc
    return {'rejected': pending_order_id}


@router.get('/sales')
def sales_report(
    mode: str = 'all',
    day: str | None = None,
    month: str | None = None,
    start: str | None = None,
    end: str | None = None,
    refresh: bool = False,
    _: Principal = Depends(admin_access),
    shopping_session: ShoppingSession = Depends(get_shopping_session),
    backend: OrderBackend = Depends(get_order_backend),
):
    aggregator = shopping_session.sales_report(backend)
    try:
        spec = parse_filter(mode, day=day, month=month, start=start, end=end)
        if refresh or not aggregator.loaded:
            aggregator.load()
    except OrderingError as exc:
        raise _bad_request(exc) from exc

    aggregator.apply(spec)
    view = report_view(aggregator.report())
    view['has_sales'] = aggregator.has_sales
    return view


@router.get('/payment-qr')
def payment_qr(
    _: Principal = Depends(admin_access),
    backend: OrderBackend = Depends(get_order_backend),
):
    try:
        return {'qr_image_url': backend.get_qr_config()}
    except OrderingError as exc:
        raise _bad_request(exc) from exc


@router.put('/payment-qr')
async def payment_qr_save(
    image: UploadFile | None = File(default=None),
    image_url: str | None = Form(default=None),
    _: Principal = Depends(admin_access),
    backend: OrderBackend = Depends(get_order_backend),
):
    if image is not None:
        content = await image.read()
        if not content:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Uploaded image is empty')
        mime = image.content_type or 'application/octet-stream'
        data_url = f'data:{mime};base64,{base64.b64encode(content).decode("ascii")}'
    elif image_url and image_url.strip():
        data_url = image_url.strip()
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Select an image to upload')

    try:
        backend.save_qr_config(data_url)
    except OrderingError as exc:
        raise _bad_request(exc) from exc
    return {'qr_image_url': data_url}
