from __future__ import annotations

import structlog

from app.errors import BackendError, NotificationError
from app.schemas import Notification
from app.services.backend_api import OrderBackend

logger = structlog.get_logger()


def order_approved_message(pending_order_id: str) -> str:
    return f'Your order #{pending_order_id} was approved. Thank you for your purchase!'


def order_rejected_message(pending_order_id: str) -> str:
    return f'Your order #{pending_order_id} was rejected. Please contact the shop for details.'


class NotificationDispatcher:
    def __init__(self, backend: OrderBackend) -> None:
        self.backend = backend

    def notify(self, user_id: str, message: str) -> None:
        try:
            self.backend.add_notification(user_id, message)
        except BackendError as exc:
            raise NotificationError(exc.message) from exc

    def fetch_unread(self, user_id: str) -> list[Notification]:
        try:
            notifications = self.backend.get_unread_notifications(user_id)
        except BackendError as exc:
            raise NotificationError(exc.message) from exc
        return sorted(notifications, key=lambda notification: notification.date, reverse=True)

    def fetch_and_consume(self, user_id: str) -> list[Notification]:
        """Return the unread batch once; a non-empty batch is marked read immediately.

        Only the returned ids are marked, so anything that arrives in between
        stays unread for the next fetch.
        """
        notifications = self.fetch_unread(user_id)
        if notifications:
            try:
                self.backend.mark_notifications_read(user_id, [notification.id for notification in notifications])
            except BackendError as exc:
                raise NotificationError(exc.message) from exc
        return notifications

    def unread_count(self, user_id: str) -> int:
        return len(self.fetch_unread(user_id))
