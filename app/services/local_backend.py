"""Embedded order backend.

Answers the same ``{action, payload}`` requests as the remote action endpoint,
backed by the SQLAlchemy models in ``app.models``. It is the single writer for
sales: approving or rejecting a pending sale is a conditional update on
``(id, status=PENDING)``, so an order can be resolved at most once no matter
how many sessions try.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from app.models import Admin, Customer, MenuItem, Notification, PaymentConfig, PendingSale, PendingSaleStatus, Sale, utcnow
from app.schemas import OrderRequest, dump_line_items
from app.security.passwords import verify_password
from app.services.audit_service import log_audit
from app.services.backend_client import ActionResponse, unwrap_response

NOT_PENDING_MESSAGE = 'Pending order not found or already resolved.'
INVALID_LOGIN_MESSAGE = 'Invalid username or password.'

_SUCCESS_MESSAGES = {
    'addSale': 'Sale recorded successfully.',
    'addPendingSale': 'Order registered, awaiting payment confirmation.',
    'approvePendingSale': 'Order approved.',
    'rejectPendingSale': 'Order rejected.',
    'saveQrConfig': 'Payment QR saved.',
}


class ActionFailed(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def _to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _parse_int_id(raw: Any, message: str) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError) as exc:
        raise ActionFailed(message) from exc


def _require_user_id(payload: dict) -> str:
    user_id = payload.get('userId')
    if user_id is None or str(user_id).strip() == '':
        raise ActionFailed('A user id is required.')
    return str(user_id).strip()


def _serialize_sale(row: Sale | PendingSale) -> dict:
    data = {
        'id': row.id,
        'userId': row.user_id,
        'items_json': row.items_json,
        'total': str(row.total),
        'paymentMethod': row.payment_method,
        'date': _to_iso(row.created_at),
    }
    if isinstance(row, PendingSale):
        data['status'] = 'Pending'
    return data


def _serialize_customer(row: Customer) -> dict:
    return {
        'id': row.id,
        'nombres': row.first_names,
        'apellidos': row.last_names,
        'celular': row.phone,
    }


def _serialize_menu_item(row: MenuItem) -> dict:
    return {
        'id': row.id,
        'nombre': row.name,
        'precio': str(row.price),
        'disponible': 'Si' if row.available else 'No',
        'imageUrl': row.image_url,
    }


def _serialize_notification(row: Notification) -> dict:
    return {
        'id': row.id,
        'userId': row.user_id,
        'message': row.message,
        'date': _to_iso(row.created_at),
        'read': row.read,
    }


def _order_from_payload(db: Session, payload: dict) -> OrderRequest:
    try:
        order = OrderRequest.model_validate(payload.get('saleData') or {})
    except ValidationError as exc:
        raise ActionFailed('Invalid sale data.') from exc
    if not order.items:
        raise ActionFailed('The order has no items.')

    ids = {int(line.item.id) for line in order.items if line.item.id.isdigit()}
    menu = {row.id: row for row in db.execute(select(MenuItem).where(MenuItem.id.in_(ids))).scalars()} if ids else {}
    for line in order.items:
        row = menu.get(int(line.item.id)) if line.item.id.isdigit() else None
        if row is None:
            raise ActionFailed(f'Unknown menu item: {line.item.name}')
        if not row.available:
            raise ActionFailed(f'{row.name} is not available.')
    return order


class LocalBackendClient:
    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory
        self._handlers: dict[str, Callable[[Session, dict], Any]] = {
            'addSale': self._add_sale,
            'addPendingSale': self._add_pending_sale,
            'approvePendingSale': self._approve_pending_sale,
            'rejectPendingSale': self._reject_pending_sale,
            'getPendingSales': self._get_pending_sales,
            'getUserPendingSales': self._get_user_pending_sales,
            'getSales': self._get_sales,
            'getUsers': self._get_users,
            'getMenuItems': self._get_menu_items,
            'addNotification': self._add_notification,
            'getUnreadNotifications': self._get_unread_notifications,
            'markNotificationsRead': self._mark_notifications_read,
            'getQrConfig': self._get_qr_config,
            'saveQrConfig': self._save_qr_config,
            'checkUserLogin': self._check_user_login,
            'checkAdminLogin': self._check_admin_login,
        }

    def call(self, action: str, payload: dict[str, Any] | None = None) -> ActionResponse:
        handler = self._handlers.get(action)
        if handler is None:
            return unwrap_response(action, ActionResponse(success=False, message=f'Unknown action: {action}'))

        with self.session_factory() as db:
            try:
                data = handler(db, payload or {})
                db.commit()
            except ActionFailed as exc:
                db.rollback()
                response = ActionResponse(success=False, message=exc.message)
            else:
                response = ActionResponse(success=True, data=data, message=_SUCCESS_MESSAGES.get(action))
        return unwrap_response(action, response)

    # Orders

    def _add_sale(self, db: Session, payload: dict) -> dict:
        order = _order_from_payload(db, payload)
        sale = Sale(
            user_id=order.customer_id,
            items_json=dump_line_items(order.items),
            total=order.total,
            payment_method=order.payment_method.value,
        )
        db.add(sale)
        db.flush()
        log_audit(db, action='SALE_CONFIRMED', metadata={'sale_id': sale.id, 'total': str(sale.total)})
        return {'id': sale.id}

    def _add_pending_sale(self, db: Session, payload: dict) -> dict:
        order = _order_from_payload(db, payload)
        pending = PendingSale(
            user_id=order.customer_id,
            items_json=dump_line_items(order.items),
            total=order.total,
            payment_method=order.payment_method.value,
            status=PendingSaleStatus.PENDING,
        )
        db.add(pending)
        db.flush()
        log_audit(db, action='PENDING_SALE_CREATED', metadata={'pending_sale_id': pending.id, 'total': str(pending.total)})
        return {'id': pending.id}

    def _resolve_pending(self, db: Session, payload: dict, status: PendingSaleStatus) -> PendingSale:
        pending_id = _parse_int_id(payload.get('id'), NOT_PENDING_MESSAGE)
        result = db.execute(
            update(PendingSale)
            .where(PendingSale.id == pending_id, PendingSale.status == PendingSaleStatus.PENDING)
            .values(status=status, resolved_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ActionFailed(NOT_PENDING_MESSAGE)
        return db.execute(select(PendingSale).where(PendingSale.id == pending_id)).scalar_one()

    def _approve_pending_sale(self, db: Session, payload: dict) -> dict:
        pending = self._resolve_pending(db, payload, PendingSaleStatus.APPROVED)
        sale = Sale(
            user_id=pending.user_id,
            items_json=pending.items_json,
            total=pending.total,
            payment_method=pending.payment_method,
            pending_sale_id=pending.id,
            created_at=pending.created_at,
        )
        db.add(sale)
        db.flush()
        log_audit(db, action='PENDING_SALE_APPROVED', metadata={'pending_sale_id': pending.id, 'sale_id': sale.id})
        return _serialize_sale(sale)

    def _reject_pending_sale(self, db: Session, payload: dict) -> None:
        pending = self._resolve_pending(db, payload, PendingSaleStatus.REJECTED)
        log_audit(db, action='PENDING_SALE_REJECTED', metadata={'pending_sale_id': pending.id})
        return None

    def _get_pending_sales(self, db: Session, payload: dict) -> list[dict]:
        rows = db.execute(
            select(PendingSale)
            .where(PendingSale.status == PendingSaleStatus.PENDING)
            .order_by(PendingSale.created_at.asc(), PendingSale.id.asc())
        ).scalars().all()
        return [_serialize_sale(row) for row in rows]

    def _get_user_pending_sales(self, db: Session, payload: dict) -> list[dict]:
        user_id = _require_user_id(payload)
        rows = db.execute(
            select(PendingSale)
            .where(PendingSale.status == PendingSaleStatus.PENDING, PendingSale.user_id == user_id)
            .order_by(PendingSale.created_at.desc(), PendingSale.id.desc())
        ).scalars().all()
        return [_serialize_sale(row) for row in rows]

    def _get_sales(self, db: Session, payload: dict) -> list[dict]:
        rows = db.execute(select(Sale).order_by(Sale.created_at.desc(), Sale.id.desc())).scalars().all()
        return [_serialize_sale(row) for row in rows]

    # Directory and catalog

    def _get_users(self, db: Session, payload: dict) -> list[dict]:
        rows = db.execute(select(Customer).order_by(Customer.id.asc())).scalars().all()
        return [_serialize_customer(row) for row in rows]

    def _get_menu_items(self, db: Session, payload: dict) -> list[dict]:
        rows = db.execute(select(MenuItem).order_by(MenuItem.name.asc(), MenuItem.id.asc())).scalars().all()
        return [_serialize_menu_item(row) for row in rows]

    def _check_user_login(self, db: Session, payload: dict) -> dict:
        username = str(payload.get('user') or '').strip()
        row = db.execute(select(Customer).where(Customer.username == username)).scalar_one_or_none()
        if not row or not row.active or not verify_password(str(payload.get('pass') or ''), row.password_hash):
            raise ActionFailed(INVALID_LOGIN_MESSAGE)
        return _serialize_customer(row)

    def _check_admin_login(self, db: Session, payload: dict) -> dict:
        username = str(payload.get('adminUser') or '').strip()
        row = db.execute(select(Admin).where(Admin.username == username)).scalar_one_or_none()
        if not row or not row.active or not verify_password(str(payload.get('adminPass') or ''), row.password_hash):
            raise ActionFailed(INVALID_LOGIN_MESSAGE)
        return {'id': row.id, 'nombres': row.first_names, 'apellidos': row.last_names}

    # Notifications

    def _add_notification(self, db: Session, payload: dict) -> dict:
        user_id = _require_user_id(payload)
        message = str(payload.get('message') or '').strip()
        if not message:
            raise ActionFailed('A notification message is required.')
        notification = Notification(user_id=user_id, message=message, read=False)
        db.add(notification)
        db.flush()
        return _serialize_notification(notification)

    def _get_unread_notifications(self, db: Session, payload: dict) -> list[dict]:
        user_id = _require_user_id(payload)
        rows = db.execute(
            select(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        ).scalars().all()
        return [_serialize_notification(row) for row in rows]

    def _mark_notifications_read(self, db: Session, payload: dict) -> None:
        user_id = _require_user_id(payload)
        conditions = [Notification.user_id == user_id, Notification.read.is_(False)]
        # Without ids every unread row is marked, as the remote endpoint does.
        if payload.get('ids') is not None:
            ids = [_parse_int_id(raw, 'Invalid notification id.') for raw in payload['ids']]
            conditions.append(Notification.id.in_(ids))
        db.execute(
            update(Notification)
            .where(*conditions)
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return None

    # Payment instruction

    def _get_qr_config(self, db: Session, payload: dict) -> str | None:
        row = db.execute(select(PaymentConfig).where(PaymentConfig.id == 1)).scalar_one_or_none()
        return row.qr_image_url if row else None

    def _save_qr_config(self, db: Session, payload: dict) -> None:
        image = str(payload.get('qrImageUrl') or '').strip()
        if not image:
            raise ActionFailed('A QR image is required.')
        row = db.execute(select(PaymentConfig).where(PaymentConfig.id == 1)).scalar_one_or_none()
        if row:
            row.qr_image_url = image
        else:
            db.add(PaymentConfig(id=1, qr_image_url=image))
        log_audit(db, action='QR_CONFIG_SAVED', metadata={'length': len(image)})
        return None
