from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.errors import BackendError
from app.schemas import CatalogItem
from app.services.backend_api import OrderBackend
from app.services.backend_client import ActionResponse

START = datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def catalog_item(item_id: str, name: str, price: str, available: bool = True) -> CatalogItem:
    return CatalogItem(id=item_id, name=name, unit_price=Decimal(price), available=available)


def wire_item(item_id: int, name: str, price: str, available: str = 'Si') -> dict:
    return {'id': item_id, 'nombre': name, 'precio': price, 'disponible': available, 'imageUrl': None}


def sale_record(sale_id: int, date: str, total: str, user_id=None, method: str = 'Efectivo') -> dict:
    return {
        'id': sale_id,
        'userId': user_id,
        'items_json': '[]',
        'total': total,
        'paymentMethod': method,
        'date': date,
    }


class FakeBackendClient:
    """In-memory stand-in for the action endpoint that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.failures: dict[str, str] = {}
        self.menu: list[dict] = [
            wire_item(1, 'Pollo entero', '10.00'),
            wire_item(2, 'Papas', '5.50'),
            wire_item(3, 'Refresco', '4.00', available='No'),
        ]
        self.users: list[dict] = [
            {'id': 7, 'nombres': 'Ana', 'apellidos': 'Quispe', 'celular': 70000000, 'user': 'ana', 'pass': 'secret'},
        ]
        self.admins: list[dict] = [
            {'id': 1, 'nombres': 'Emy', 'apellidos': 'Admin', 'adminUser': 'admin', 'adminPass': 'admin123'},
        ]
        self.sales: list[dict] = []
        self.pending: list[dict] = []
        self.notifications: list[dict] = []
        self.qr_image_url: str | None = 'data:image/png;base64,AAAA'
        self._next_id = 100
        self._clock = START

    def fail(self, action: str, message: str = 'Backend unavailable') -> None:
        self.failures[action] = message

    def actions(self) -> list[str]:
        return [action for action, _ in self.calls]

    def call(self, action: str, payload: dict | None = None) -> ActionResponse:
        payload = payload or {}
        self.calls.append((action, payload))
        if action in self.failures:
            raise BackendError(self.failures[action], action=action)
        handler = getattr(self, f'_{action}')
        data, message = handler(payload)
        return ActionResponse(success=True, data=data, message=message)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _tick(self) -> str:
        self._clock += timedelta(minutes=1)
        return iso(self._clock)

    def _record(self, payload: dict) -> dict:
        sale_data = payload['saleData']
        return {
            'id': self._new_id(),
            'userId': sale_data.get('userId'),
            'items': sale_data['items'],
            'total': sale_data['total'],
            'paymentMethod': sale_data['paymentMethod'],
            'date': self._tick(),
        }

    def _find_pending(self, payload: dict) -> dict:
        for record in self.pending:
            if str(record['id']) == str(payload['id']):
                return record
        raise BackendError('Pending order not found or already resolved.', action='approvePendingSale')

    def _addSale(self, payload):
        record = self._record(payload)
        self.sales.append(record)
        return {'id': record['id']}, 'Sale recorded successfully.'

    def _addPendingSale(self, payload):
        record = self._record(payload)
        self.pending.append(record)
        return {'id': record['id']}, None

    def _approvePendingSale(self, payload):
        record = self._find_pending(payload)
        self.pending.remove(record)
        sale = dict(record)
        self.sales.append(sale)
        return sale, None

    def _rejectPendingSale(self, payload):
        self.pending.remove(self._find_pending(payload))
        return None, None

    def _getPendingSales(self, payload):
        return list(self.pending), None

    def _getUserPendingSales(self, payload):
        return [record for record in self.pending if str(record['userId']) == str(payload['userId'])], None

    def _getSales(self, payload):
        return list(self.sales), None

    def _getUsers(self, payload):
        return [{key: user[key] for key in ('id', 'nombres', 'apellidos', 'celular')} for user in self.users], None

    def _getMenuItems(self, payload):
        return list(self.menu), None

    def _checkUserLogin(self, payload):
        for user in self.users:
            if user['user'] == payload['user'] and user['pass'] == payload['pass']:
                return {key: user[key] for key in ('id', 'nombres', 'apellidos', 'celular')}, None
        raise BackendError('Invalid username or password.', action='checkUserLogin')

    def _checkAdminLogin(self, payload):
        for admin in self.admins:
            if admin['adminUser'] == payload['adminUser'] and admin['adminPass'] == payload['adminPass']:
                return {'id': admin['id'], 'nombres': admin['nombres'], 'apellidos': admin['apellidos']}, None
        raise BackendError('Invalid username or password.', action='checkAdminLogin')

    def _addNotification(self, payload):
        notification = {
            'id': self._new_id(),
            'userId': payload['userId'],
            'message': payload['message'],
            'date': self._tick(),
            'read': False,
        }
        self.notifications.append(notification)
        return notification, None

    def _getUnreadNotifications(self, payload):
        user_id = str(payload['userId'])
        return [n for n in self.notifications if str(n['userId']) == user_id and not n['read']], None

    def _markNotificationsRead(self, payload):
        user_id = str(payload['userId'])
        ids = payload.get('ids')
        for notification in self.notifications:
            if str(notification['userId']) != user_id:
                continue
            if ids is None or str(notification['id']) in ids:
                notification['read'] = True
        return None, None

    def _getQrConfig(self, payload):
        return self.qr_image_url, None

    def _saveQrConfig(self, payload):
        self.qr_image_url = payload['qrImageUrl']
        return None, None


def fake_backend() -> tuple[FakeBackendClient, OrderBackend]:
    client = FakeBackendClient()
    return client, OrderBackend(client)
