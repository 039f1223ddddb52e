from __future__ import annotations

from decimal import Decimal

from app.config import settings
from app.schemas import CatalogItem, Customer, LineItem, Notification, PendingOrder, Sale
from app.services.cart_service import CartStore
from app.services.sales_report_service import SalesReport, UNREGISTERED_CUSTOMER


def money(value: Decimal) -> str:
    return f'{value:.2f}'


def catalog_item_view(item: CatalogItem, *, in_cart: bool = False) -> dict:
    return {
        'id': item.id,
        'name': item.name,
        'unit_price': money(item.unit_price),
        'available': item.available,
        'image_url': item.image_url,
        'in_cart': in_cart,
    }


def line_item_view(line: LineItem) -> dict:
    return {
        'item_id': line.item.id,
        'name': line.item.name,
        'unit_price': money(line.item.unit_price),
        'quantity': line.quantity,
        'subtotal': money(line.subtotal),
    }


def cart_view(cart: CartStore) -> dict:
    return {
        'items': [line_item_view(line) for line in cart.snapshot()],
        'total': money(cart.total()),
        'currency': settings.currency_label,
    }


def sale_view(sale: Sale, *, customer: Customer | None = None, include_customer: bool = False) -> dict:
    view = {
        'id': sale.id,
        'customer_id': sale.customer_id,
        'date': sale.date.isoformat(),
        'payment_method': sale.payment_method.value,
        'items': [line_item_view(line) for line in sale.items],
        'total': money(sale.total),
    }
    if isinstance(sale, PendingOrder):
        view['status'] = sale.status
    if include_customer:
        view['customer'] = customer.display_name if customer else UNREGISTERED_CUSTOMER
    return view


def notification_view(notification: Notification) -> dict:
    return {
        'id': notification.id,
        'message': notification.message,
        'date': notification.date.isoformat(),
    }


def report_view(report: SalesReport) -> dict:
    return {
        'mode': report.filter.mode.value,
        'label': report.label,
        'sales': [
            sale_view(line.sale, customer=line.customer, include_customer=True)
            for line in report.lines
        ],
        'total': money(report.total),
        'currency': settings.currency_label,
    }
