from __future__ import annotations

from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from app.errors import BackendError
from app.schemas import (
    CatalogItem,
    Customer,
    Notification,
    OrderRequest,
    PendingOrder,
    Sale,
    SaleReceipt,
    StaffProfile,
)
from app.services.backend_client import INVALID_RESPONSE_MESSAGE, BackendClient

T = TypeVar('T')

_SALES = TypeAdapter(list[Sale])
_PENDING = TypeAdapter(list[PendingOrder])
_CUSTOMERS = TypeAdapter(list[Customer])
_MENU = TypeAdapter(list[CatalogItem])
_NOTIFICATIONS = TypeAdapter(list[Notification])


class OrderBackend:
    """Typed access to the backend actions used by the ordering services."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    def _data(
        self,
        action: str,
        adapter: TypeAdapter[T],
        payload: dict[str, Any] | None = None,
        *,
        many: bool = True,
    ) -> T:
        data = self.client.call(action, payload).data
        if data is None and many:
            data = []
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            raise BackendError(INVALID_RESPONSE_MESSAGE, action=action) from exc

    # Orders

    def add_sale(self, order: OrderRequest) -> tuple[SaleReceipt, str | None]:
        response = self.client.call('addSale', {'saleData': order.to_payload()})
        return _receipt('addSale', response.data), response.message

    def add_pending_sale(self, order: OrderRequest) -> tuple[SaleReceipt, str | None]:
        response = self.client.call('addPendingSale', {'saleData': order.to_payload()})
        return _receipt('addPendingSale', response.data), response.message

    def approve_pending_sale(self, pending_order_id: str) -> Sale | None:
        response = self.client.call('approvePendingSale', {'id': pending_order_id})
        if not isinstance(response.data, dict):
            return None
        try:
            return Sale.model_validate(response.data)
        except ValidationError as exc:
            raise BackendError(INVALID_RESPONSE_MESSAGE, action='approvePendingSale') from exc

    def reject_pending_sale(self, pending_order_id: str) -> None:
        self.client.call('rejectPendingSale', {'id': pending_order_id})

    def get_pending_sales(self) -> list[PendingOrder]:
        return self._data('getPendingSales', _PENDING)

    def get_user_pending_sales(self, user_id: str) -> list[PendingOrder]:
        return self._data('getUserPendingSales', _PENDING, {'userId': user_id})

    def get_sales(self) -> list[Sale]:
        return self._data('getSales', _SALES)

    # Directory and catalog

    def get_users(self) -> list[Customer]:
        return self._data('getUsers', _CUSTOMERS)

    def get_menu_items(self) -> list[CatalogItem]:
        return self._data('getMenuItems', _MENU)

    def check_user_login(self, user: str, password: str) -> Customer:
        return self._data('checkUserLogin', TypeAdapter(Customer), {'user': user, 'pass': password}, many=False)

    def check_admin_login(self, admin_user: str, admin_password: str) -> StaffProfile:
        return self._data(
            'checkAdminLogin',
            TypeAdapter(StaffProfile),
            {'adminUser': admin_user, 'adminPass': admin_password},
            many=False,
        )

    # Notifications

    def add_notification(self, user_id: str, message: str) -> None:
        self.client.call('addNotification', {'userId': user_id, 'message': message})

    def get_unread_notifications(self, user_id: str) -> list[Notification]:
        return self._data('getUnreadNotifications', _NOTIFICATIONS, {'userId': user_id})

    def mark_notifications_read(self, user_id: str, notification_ids: list[str]) -> None:
        self.client.call('markNotificationsRead', {'userId': user_id, 'ids': notification_ids})

    # Payment instruction

    def get_qr_config(self) -> str | None:
        data = self.client.call('getQrConfig').data
        if isinstance(data, dict):
            data = data.get('qrImageUrl')
        return data or None

    def save_qr_config(self, image: str) -> None:
        self.client.call('saveQrConfig', {'qrImageUrl': image})


def _receipt(action: str, data: Any) -> SaleReceipt:
    if data is None:
        return SaleReceipt()
    if not isinstance(data, dict):
        data = {'id': data}
    try:
        return SaleReceipt.model_validate(data)
    except ValidationError as exc:
        raise BackendError(INVALID_RESPONSE_MESSAGE, action=action) from exc
