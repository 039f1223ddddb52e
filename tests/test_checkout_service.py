from __future__ import annotations

import unittest
from decimal import Decimal

from app.errors import CheckoutError
from app.schemas import PaymentMethod
from app.services.cart_service import CartStore
from app.services.checkout_service import (
    PAYMENT_PENDING_MESSAGE,
    CheckoutCoordinator,
    OutcomeKind,
    build_order_request,
)
from support import catalog_item, fake_backend


class CheckoutCoordinatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client, backend = fake_backend()
        self.coordinator = CheckoutCoordinator(backend)
        self.cart = CartStore()
        self.cart.add(catalog_item('1', 'Pollo entero', '10.00'))
        self.cart.add(catalog_item('2', 'Papas', '5.50'))
        self.cart.set_quantity('1', 2)

    def test_cash_checkout_records_confirmed_sale_only(self) -> None:
        outcome = self.coordinator.checkout(self.cart.snapshot(), 'Efectivo', customer_id='7')

        self.assertEqual(outcome.kind, OutcomeKind.CONFIRMED)
        self.assertEqual(outcome.total, Decimal('25.50'))
        self.assertEqual(outcome.message, 'Sale recorded successfully.')
        self.assertEqual(outcome.sale_id, str(self.client.sales[0]['id']))
        self.assertEqual(len(self.client.sales), 1)
        self.assertEqual(self.client.pending, [])
        self.assertEqual(self.client.sales[0]['total'], '25.50')
        self.assertEqual(self.client.sales[0]['paymentMethod'], 'Efectivo')
        self.assertEqual(self.client.sales[0]['userId'], '7')

    def test_qr_checkout_creates_pending_order_only(self) -> None:
        outcome = self.coordinator.checkout(self.cart.snapshot(), PaymentMethod.QR, customer_id='7')

        self.assertEqual(outcome.kind, OutcomeKind.PENDING_APPROVAL)
        self.assertEqual(outcome.message, PAYMENT_PENDING_MESSAGE)
        self.assertIsNone(outcome.sale_id)
        self.assertEqual(self.client.sales, [])
        self.assertEqual(len(self.client.pending), 1)
        self.assertEqual(self.client.pending[0]['paymentMethod'], 'QR')

    def test_submitted_items_carry_quantities_and_prices(self) -> None:
        self.coordinator.checkout(self.cart.snapshot(), 'cash')

        items = self.client.sales[0]['items']
        self.assertEqual([line['quantity'] for line in items], [2, 1])
        self.assertEqual(items[0]['item']['nombre'], 'Pollo entero')
        self.assertEqual(items[0]['item']['precio'], '10.00')

    def test_empty_cart_is_refused_without_backend_call(self) -> None:
        with self.assertRaises(CheckoutError) as ctx:
            self.coordinator.checkout((), 'Efectivo')

        self.assertEqual(ctx.exception.message, 'Your cart is empty.')
        self.assertEqual(self.client.calls, [])

    def test_unknown_payment_method_is_refused(self) -> None:
        with self.assertRaises(CheckoutError):
            self.coordinator.checkout(self.cart.snapshot(), 'Tarjeta')
        self.assertEqual(self.client.calls, [])

    def test_backend_failure_keeps_cart_and_surfaces_message(self) -> None:
        self.client.fail('addSale', 'Backend network error: timed out')

        with self.assertRaises(CheckoutError) as ctx:
            self.coordinator.checkout(self.cart.snapshot(), 'Efectivo')

        self.assertEqual(ctx.exception.message, 'Backend network error: timed out')
        self.assertEqual(len(self.cart), 2)
        self.assertEqual(self.cart.total(), Decimal('25.50'))

    def test_payment_instruction_is_none_when_backend_fails(self) -> None:
        self.assertEqual(self.coordinator.payment_instruction(), 'data:image/png;base64,AAAA')

        self.client.fail('getQrConfig')
        self.assertIsNone(self.coordinator.payment_instruction())

    def test_total_rounds_once_after_multiplying_unrounded_price(self) -> None:
        cart = CartStore()
        cart.add(catalog_item('5', 'Salsa', '0.335'))
        cart.set_quantity('5', 3)
        order = build_order_request(cart.snapshot(), PaymentMethod.CASH, None)

        self.assertEqual(order.items[0].item.unit_price, Decimal('0.335'))
        self.assertEqual(cart.total(), Decimal('1.01'))
        self.assertEqual(order.total, Decimal('1.01'))
        self.assertEqual(order.to_payload()['items'][0]['item']['precio'], '0.335')
        self.assertIsNone(order.to_payload()['userId'])


if __name__ == '__main__':
    unittest.main()
