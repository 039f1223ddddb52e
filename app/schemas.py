"""Records exchanged with the order backend.

Field aliases follow the backend's own column names (``nombre``, ``precio``,
``userId``...) so the same models validate what comes off the wire and produce
the payloads sent back to it.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Annotated, Any

import structlog
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

logger = structlog.get_logger()

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _coerce_id(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError('Invalid identifier')
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, (int, str)):
        return str(value).strip()
    return value


def _coerce_optional_id(value: Any) -> Any:
    if value is None:
        return None
    value = _coerce_id(value)
    return value or None


def _coerce_money(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        return value.strip()
    return value


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


EntityId = Annotated[str, BeforeValidator(_coerce_id)]
OptionalEntityId = Annotated[str | None, BeforeValidator(_coerce_optional_id)]
Price = Annotated[Decimal, BeforeValidator(_coerce_money)]
Money = Annotated[Decimal, BeforeValidator(_coerce_money), AfterValidator(round_money)]
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]

_WIRE = ConfigDict(populate_by_name=True, frozen=True, extra='ignore')


class PaymentMethod(str, Enum):
    CASH = 'Efectivo'
    QR = 'QR'

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {'cash', 'efectivo'}:
                return cls.CASH
            if normalized == 'qr':
                return cls.QR
        return None


class CatalogItem(BaseModel):
    model_config = _WIRE

    id: EntityId
    name: str = Field(alias='nombre')
    unit_price: Price = Field(alias='precio')
    available: bool = Field(default=True, alias='disponible')
    image_url: str | None = Field(default=None, alias='imageUrl')

    @field_validator('available', mode='before')
    @classmethod
    def _parse_available(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in {'si', 'sí', 'yes', 'true', '1'}
        return value

    @field_serializer('available')
    def _serialize_available(self, value: bool) -> str:
        return 'Si' if value else 'No'


class LineItem(BaseModel):
    model_config = _WIRE

    item: CatalogItem
    quantity: int = Field(ge=1)

    @property
    def subtotal(self) -> Decimal:
        return round_money(self.item.unit_price * self.quantity)


_LINE_ITEMS = TypeAdapter(list[LineItem])


def parse_line_items(raw: Any, *, record_id: Any = None) -> list[LineItem]:
    """Decode a stored item snapshot; unreadable snapshots become an empty list."""
    if raw is None or raw == '':
        return []
    try:
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)
        return _LINE_ITEMS.validate_python(raw)
    except (ValueError, ValidationError) as exc:
        logger.warning('sale_items_unreadable', sale_id=record_id, error=str(exc))
        return []


def dump_line_items(items: tuple[LineItem, ...] | list[LineItem]) -> str:
    return json.dumps([line.model_dump(mode='json', by_alias=True) for line in items])


class OrderRequest(BaseModel):
    """Frozen snapshot of a cart at submission time."""

    model_config = _WIRE

    items: tuple[LineItem, ...]
    total: Money
    payment_method: PaymentMethod = Field(alias='paymentMethod')
    customer_id: OptionalEntityId = Field(default=None, alias='userId')

    def to_payload(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class Sale(BaseModel):
    model_config = _WIRE

    id: EntityId
    customer_id: OptionalEntityId = Field(default=None, alias='userId')
    items: tuple[LineItem, ...] = ()
    total: Money
    payment_method: PaymentMethod = Field(alias='paymentMethod')
    date: UtcDatetime

    @model_validator(mode='before')
    @classmethod
    def _unpack_items_json(cls, data: Any) -> Any:
        if isinstance(data, dict) and 'items_json' in data:
            data = dict(data)
            raw = data.pop('items_json')
            if 'items' not in data:
                data['items'] = parse_line_items(raw, record_id=data.get('id'))
        return data


class PendingOrder(Sale):
    status: str = 'Pending'

    def as_sale(self) -> Sale:
        return Sale.model_validate(self.model_dump(exclude={'status'}))


class Customer(BaseModel):
    model_config = _WIRE

    id: EntityId
    first_names: str = Field(default='', alias='nombres')
    last_names: str = Field(default='', alias='apellidos')
    phone: str | None = Field(default=None, alias='celular')

    @field_validator('phone', mode='before')
    @classmethod
    def _phone_to_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value

    @property
    def display_name(self) -> str:
        name = f'{self.first_names} {self.last_names}'.strip()
        if self.phone:
            return f'{name} ({self.phone})'
        return name


class StaffProfile(BaseModel):
    model_config = _WIRE

    id: EntityId
    first_names: str = Field(default='', alias='nombres')
    last_names: str = Field(default='', alias='apellidos')


class Notification(BaseModel):
    model_config = _WIRE

    id: EntityId
    user_id: EntityId = Field(alias='userId')
    message: str
    date: UtcDatetime
    read: bool = False


class SaleReceipt(BaseModel):
    model_config = _WIRE

    id: OptionalEntityId = None
