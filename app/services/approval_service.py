from __future__ import annotations

import threading

import structlog

from app.config import settings
from app.errors import ApprovalError, BackendError, NotificationError
from app.schemas import PendingOrder, Sale
from app.services.backend_api import OrderBackend
from app.services.notification_service import (
    NotificationDispatcher,
    order_approved_message,
    order_rejected_message,
)

logger = structlog.get_logger()

NOT_PENDING_MESSAGE = 'Pending order not found or already resolved.'
IN_FLIGHT_MESSAGE = 'This order is already being processed.'


class PendingOrderApprovalEngine:
    """Staff queue of QR orders awaiting approval.

    Approve and reject are the only transitions and both are terminal: once
    the backend confirms either one, the id is dropped from the queue and is
    filtered out of any later refresh. While a request for an id is in flight,
    a second approve/reject for the same id is refused. That guard only keeps
    one session from double-submitting; the backend must still refuse to
    resolve an order twice. Staff and guest orders have nobody to notify.
    """

    def __init__(self, backend: OrderBackend, notifications: NotificationDispatcher) -> None:
        self.backend = backend
        self.notifications = notifications
        self.loaded = False
        self._pending: dict[str, PendingOrder] = {}
        self._resolved: set[str] = set()
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    def refresh(self) -> list[PendingOrder]:
        try:
            orders = self.backend.get_pending_sales()
        except BackendError as exc:
            raise ApprovalError(exc.message) from exc
        with self._lock:
            self._pending = {order.id: order for order in orders if order.id not in self._resolved}
            self.loaded = True
        return self.list_pending()

    def list_pending(self) -> list[PendingOrder]:
        return sorted(self._pending.values(), key=lambda order: order.date)

    def is_processing(self, pending_order_id: str) -> bool:
        return pending_order_id in self._in_flight

    def approve(self, pending_order_id: str) -> Sale:
        pending = self._claim(pending_order_id)
        try:
            try:
                sale = self.backend.approve_pending_sale(pending_order_id)
            except BackendError as exc:
                raise ApprovalError(exc.message, pending_order_id=pending_order_id) from exc
            self._resolve(pending_order_id)
        finally:
            self._release(pending_order_id)

        logger.info('pending_order_approved', pending_order_id=pending_order_id)
        self._notify(pending, order_approved_message(pending_order_id))
        return sale or pending.as_sale()

    def reject(self, pending_order_id: str) -> None:
        pending = self._claim(pending_order_id)
        try:
            try:
                self.backend.reject_pending_sale(pending_order_id)
            except BackendError as exc:
                raise ApprovalError(exc.message, pending_order_id=pending_order_id) from exc
            self._resolve(pending_order_id)
        finally:
            self._release(pending_order_id)

        logger.info('pending_order_rejected', pending_order_id=pending_order_id)
        self._notify(pending, order_rejected_message(pending_order_id))

    def _claim(self, pending_order_id: str) -> PendingOrder:
        # An order placed after the last listing is only known to the backend.
        if pending_order_id not in self._pending and pending_order_id not in self._resolved:
            self.refresh()
        with self._lock:
            pending = self._pending.get(pending_order_id)
            if pending is None:
                raise ApprovalError(NOT_PENDING_MESSAGE, pending_order_id=pending_order_id)
            if pending_order_id in self._in_flight:
                raise ApprovalError(IN_FLIGHT_MESSAGE, pending_order_id=pending_order_id)
            self._in_flight.add(pending_order_id)
            return pending

    def _release(self, pending_order_id: str) -> None:
        with self._lock:
            self._in_flight.discard(pending_order_id)

    def _resolve(self, pending_order_id: str) -> None:
        with self._lock:
            self._pending.pop(pending_order_id, None)
            self._resolved.add(pending_order_id)

    def _notify(self, pending: PendingOrder, message: str) -> None:
        if pending.customer_id is None or pending.customer_id == str(settings.guest_customer_id):
            return
        try:
            self.notifications.notify(pending.customer_id, message)
        except NotificationError as exc:
            # The transition stands; the customer simply is not told.
            logger.warning('notification_failed', user_id=pending.customer_id, error=exc.message)
