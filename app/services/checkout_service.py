from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

import structlog

from app.errors import BackendError, CheckoutError
from app.schemas import ZERO, LineItem, OrderRequest, PaymentMethod, round_money
from app.services.backend_api import OrderBackend

logger = structlog.get_logger()

SALE_CONFIRMED_MESSAGE = 'Sale recorded successfully.'
PAYMENT_PENDING_MESSAGE = 'Order registered. Please scan the QR code to pay.'


class OutcomeKind(str, Enum):
    CONFIRMED = 'CONFIRMED'
    PENDING_APPROVAL = 'PENDING_APPROVAL'


@dataclass(frozen=True)
class OrderOutcome:
    kind: OutcomeKind
    message: str
    total: Decimal
    sale_id: str | None = None


def build_order_request(
    lines: Sequence[LineItem],
    payment_method: PaymentMethod,
    customer_id: str | None,
) -> OrderRequest:
    total = round_money(sum((line.item.unit_price * line.quantity for line in lines), ZERO))
    return OrderRequest(
        items=tuple(lines),
        total=total,
        payment_method=payment_method,
        customer_id=customer_id,
    )


class CheckoutCoordinator:
    """Turns a cart snapshot into an order and routes it by payment method.

    Cash orders are recorded as confirmed sales straight away; QR orders wait
    for staff approval. The cart itself is never touched here.
    """

    def __init__(self, backend: OrderBackend) -> None:
        self.backend = backend

    def checkout(
        self,
        lines: Sequence[LineItem],
        payment_method: PaymentMethod | str,
        customer_id: str | None = None,
    ) -> OrderOutcome:
        if not lines:
            raise CheckoutError('Your cart is empty.')
        try:
            method = PaymentMethod(payment_method)
        except ValueError as exc:
            raise CheckoutError('Select a valid payment method.') from exc

        order = build_order_request(lines, method, customer_id)
        logger.info('checkout_submitted', payment_method=method.value, total=str(order.total))
        try:
            if method is PaymentMethod.CASH:
                receipt, message = self.backend.add_sale(order)
                return OrderOutcome(
                    kind=OutcomeKind.CONFIRMED,
                    message=message or SALE_CONFIRMED_MESSAGE,
                    total=order.total,
                    sale_id=receipt.id,
                )
            self.backend.add_pending_sale(order)
        except BackendError as exc:
            raise CheckoutError(exc.message) from exc
        return OrderOutcome(kind=OutcomeKind.PENDING_APPROVAL, message=PAYMENT_PENDING_MESSAGE, total=order.total)

    def payment_instruction(self) -> str | None:
        """Scan-code reference shown after a QR checkout, or None when unavailable."""
        try:
            return self.backend.get_qr_config()
        except BackendError as exc:
            logger.warning('payment_instruction_unavailable', error=exc.message)
            return None
