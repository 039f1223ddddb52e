from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from app.auth import Principal, Role
from app.services.approval_service import PendingOrderApprovalEngine
from app.services.backend_api import OrderBackend
from app.services.cart_service import CartStore
from app.services.notification_service import NotificationDispatcher
from app.services.sales_report_service import SalesReportAggregator


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class ShoppingSession:
    """Everything one browser session owns: identity, cart, and staff views."""

    token: str
    expires_at: datetime
    principal: Principal | None = None
    cart: CartStore = field(default_factory=CartStore)
    approvals: PendingOrderApprovalEngine | None = None
    report: SalesReportAggregator | None = None

    def sign_in(self, principal: Principal) -> None:
        self.principal = principal
        self.approvals = None
        self.report = None

    def sign_out(self) -> None:
        self.principal = None
        self.cart.clear()
        self.approvals = None
        self.report = None

    def complete_purchase(self) -> str:
        """Clear the cart after a successful order and name the view to return to."""
        self.cart.clear()
        if self.principal is None:
            return 'main'
        if self.principal.role == Role.ADMIN:
            return 'admin_panel'
        return 'customer_panel'

    def approval_engine(self, backend: OrderBackend) -> PendingOrderApprovalEngine:
        if self.approvals is None:
            self.approvals = PendingOrderApprovalEngine(backend, NotificationDispatcher(backend))
        return self.approvals

    def sales_report(self, backend: OrderBackend) -> SalesReportAggregator:
        if self.report is None:
            self.report = SalesReportAggregator(backend)
        return self.report


class SessionStore:
    """In-memory sessions keyed by an opaque cookie token, with sliding expiry."""

    def __init__(self, ttl_minutes: int) -> None:
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: dict[str, ShoppingSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> ShoppingSession:
        now = _now()
        shopping_session = ShoppingSession(token=secrets.token_urlsafe(32), expires_at=now + self.ttl)
        with self._lock:
            self._purge_expired(now)
            self._sessions[shopping_session.token] = shopping_session
        return shopping_session

    def load(self, token: str | None) -> ShoppingSession | None:
        if not token:
            return None
        now = _now()
        with self._lock:
            shopping_session = self._sessions.get(token)
            if shopping_session is None:
                return None
            if shopping_session.expires_at <= now:
                del self._sessions[token]
                return None
            shopping_session.expires_at = now + self.ttl
            return shopping_session

    def revoke(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)

    def _purge_expired(self, now: datetime) -> None:
        expired = [token for token, item in self._sessions.items() if item.expires_at <= now]
        for token in expired:
            del self._sessions[token]
