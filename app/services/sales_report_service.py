from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum

from app.errors import BackendError, ReportError
from app.schemas import ZERO, Customer, Sale, round_money
from app.services.backend_api import OrderBackend

UNREGISTERED_CUSTOMER = 'Unregistered customer'

_DAY_START = time.min
_DAY_END = time(23, 59, 59, 999000)


class FilterMode(str, Enum):
    ALL = 'all'
    DAY = 'day'
    MONTH = 'month'
    RANGE = 'range'


@dataclass(frozen=True)
class AllSales:
    mode = FilterMode.ALL


@dataclass(frozen=True)
class DayFilter:
    day: date | None = None
    mode = FilterMode.DAY


@dataclass(frozen=True)
class MonthFilter:
    year: int | None = None
    month: int | None = None
    mode = FilterMode.MONTH


@dataclass(frozen=True)
class RangeFilter:
    start: date | None = None
    end: date | None = None
    mode = FilterMode.RANGE


FilterSpec = AllSales | DayFilter | MonthFilter | RangeFilter


def empty_filter(mode: FilterMode | str) -> FilterSpec:
    mode = FilterMode(mode)
    if mode is FilterMode.DAY:
        return DayFilter()
    if mode is FilterMode.MONTH:
        return MonthFilter()
    if mode is FilterMode.RANGE:
        return RangeFilter()
    return AllSales()


def parse_filter(
    mode: str | None,
    *,
    day: str | None = None,
    month: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> FilterSpec:
    """Build a filter from query-string values; blank values leave the window unselected."""
    try:
        selected = FilterMode((mode or 'all').strip().lower())
        if selected is FilterMode.DAY:
            return DayFilter(day=_parse_date(day))
        if selected is FilterMode.MONTH:
            raw = (month or '').strip()
            if not raw:
                return MonthFilter()
            year_raw, month_raw = raw.split('-', 1)
            year, month_number = int(year_raw), int(month_raw)
            if not 1 <= month_number <= 12:
                raise ValueError(raw)
            return MonthFilter(year=year, month=month_number)
        if selected is FilterMode.RANGE:
            return RangeFilter(start=_parse_date(start), end=_parse_date(end))
    except ValueError as exc:
        raise ReportError('Invalid date filter.') from exc
    return AllSales()


def _parse_date(raw: str | None) -> date | None:
    raw = (raw or '').strip()
    return date.fromisoformat(raw) if raw else None


def is_active(spec: FilterSpec) -> bool:
    if isinstance(spec, DayFilter):
        return spec.day is not None
    if isinstance(spec, MonthFilter):
        return spec.year is not None and spec.month is not None
    if isinstance(spec, RangeFilter):
        return spec.start is not None and spec.end is not None
    return False


def sale_matches(sale: Sale, spec: FilterSpec) -> bool:
    if not is_active(spec):
        return True
    # Day and month windows compare the UTC calendar date of the sale.
    stamp = sale.date.astimezone(timezone.utc)
    if isinstance(spec, DayFilter):
        return stamp.date() == spec.day
    if isinstance(spec, MonthFilter):
        return (stamp.year, stamp.month) == (spec.year, spec.month)
    lower = datetime.combine(spec.start, _DAY_START, tzinfo=timezone.utc)
    upper = datetime.combine(spec.end, _DAY_END, tzinfo=timezone.utc)
    return lower <= stamp <= upper


def describe_filter(spec: FilterSpec) -> str:
    if not is_active(spec):
        return 'all sales'
    if isinstance(spec, DayFilter):
        return f'day {spec.day.isoformat()}'
    if isinstance(spec, MonthFilter):
        return f'month {spec.year:04d}-{spec.month:02d}'
    return f'{spec.start.isoformat()} to {spec.end.isoformat()}'


@dataclass(frozen=True)
class ReportLine:
    sale: Sale
    customer: Customer | None

    @property
    def customer_label(self) -> str:
        return self.customer.display_name if self.customer else UNREGISTERED_CUSTOMER


@dataclass(frozen=True)
class SalesReport:
    filter: FilterSpec
    label: str
    lines: list[ReportLine]
    total: Decimal

    @property
    def filtered_sales(self) -> list[Sale]:
        return [line.sale for line in self.lines]


def aggregate(sales: Iterable[Sale], customers: Iterable[Customer], spec: FilterSpec) -> SalesReport:
    customers_by_id = {customer.id: customer for customer in customers}
    selected = sorted((sale for sale in sales if sale_matches(sale, spec)), key=lambda sale: sale.date, reverse=True)
    lines = [
        ReportLine(sale=sale, customer=customers_by_id.get(sale.customer_id) if sale.customer_id else None)
        for sale in selected
    ]
    total = round_money(sum((sale.total for sale in selected), ZERO))
    return SalesReport(filter=spec, label=describe_filter(spec), lines=lines, total=total)


class SalesReportAggregator:
    """Sales report for one staff session.

    Sales and the customer directory are loaded once and re-filtered locally
    until ``load`` is called again.
    """

    def __init__(self, backend: OrderBackend) -> None:
        self.backend = backend
        self.loaded = False
        self.filter: FilterSpec = AllSales()
        self._sales: list[Sale] = []
        self._customers: list[Customer] = []

    def load(self) -> None:
        try:
            sales = self.backend.get_sales()
            customers = self.backend.get_users()
        except BackendError as exc:
            raise ReportError(exc.message) from exc
        self._sales = sorted(sales, key=lambda sale: sale.date, reverse=True)
        self._customers = customers
        self.loaded = True

    @property
    def has_sales(self) -> bool:
        return bool(self._sales)

    def select_mode(self, mode: FilterMode | str) -> FilterSpec:
        self.filter = empty_filter(mode)
        return self.filter

    def apply(self, spec: FilterSpec) -> FilterSpec:
        self.filter = spec
        return self.filter

    def clear(self) -> FilterSpec:
        return self.select_mode(FilterMode.ALL)

    def report(self) -> SalesReport:
        return aggregate(self._sales, self._customers, self.filter)
