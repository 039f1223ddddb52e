from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from app.errors import ReportError
from app.schemas import Customer, Sale
from app.services.sales_report_service import (
    AllSales,
    DayFilter,
    FilterMode,
    MonthFilter,
    RangeFilter,
    SalesReportAggregator,
    aggregate,
    describe_filter,
    parse_filter,
    sale_matches,
)
from support import fake_backend, sale_record


def _sale(sale_id: int, stamp: str, total: str = '10.00', user_id=None) -> Sale:
    return Sale.model_validate(sale_record(sale_id, stamp, total, user_id=user_id))


class SaleFilterTests(unittest.TestCase):
    def test_range_includes_end_day_until_last_millisecond(self) -> None:
        spec = RangeFilter(start=date(2024, 3, 5), end=date(2024, 3, 5))

        self.assertTrue(sale_matches(_sale(1, '2024-03-05T00:00:00Z'), spec))
        self.assertTrue(sale_matches(_sale(2, '2024-03-05T23:59:00Z'), spec))
        self.assertFalse(sale_matches(_sale(3, '2024-03-06T00:00:01Z'), spec))
        self.assertFalse(sale_matches(_sale(4, '2024-03-04T23:59:59Z'), spec))

    def test_day_and_month_compare_utc_calendar_date(self) -> None:
        late_local = _sale(1, '2024-03-05T22:30:00-04:00')

        self.assertTrue(sale_matches(late_local, DayFilter(day=date(2024, 3, 6))))
        self.assertFalse(sale_matches(late_local, DayFilter(day=date(2024, 3, 5))))
        self.assertTrue(sale_matches(late_local, MonthFilter(year=2024, month=3)))
        self.assertFalse(sale_matches(late_local, MonthFilter(year=2024, month=4)))

    def test_incomplete_filter_matches_everything(self) -> None:
        sale = _sale(1, '2024-03-05T10:00:00Z')

        self.assertTrue(sale_matches(sale, DayFilter()))
        self.assertTrue(sale_matches(sale, RangeFilter(start=date(2024, 1, 1))))
        self.assertTrue(sale_matches(sale, MonthFilter(year=2024)))
        self.assertEqual(describe_filter(RangeFilter(start=date(2024, 1, 1))), 'all sales')

    def test_parse_filter(self) -> None:
        self.assertEqual(parse_filter(None), AllSales())
        self.assertEqual(parse_filter('day', day='2024-03-05'), DayFilter(day=date(2024, 3, 5)))
        self.assertEqual(parse_filter('MONTH', month='2024-03'), MonthFilter(year=2024, month=3))
        self.assertEqual(parse_filter('month', month=''), MonthFilter())
        self.assertEqual(
            parse_filter('range', start='2024-03-01', end='2024-03-05'),
            RangeFilter(start=date(2024, 3, 1), end=date(2024, 3, 5)),
        )
        self.assertEqual(describe_filter(parse_filter('month', month='2024-03')), 'month 2024-03')

    def test_parse_filter_rejects_bad_values(self) -> None:
        for kwargs in (
            {'mode': 'week'},
            {'mode': 'day', 'day': '05/03/2024'},
            {'mode': 'month', 'month': '2024-13'},
            {'mode': 'month', 'month': '2024'},
        ):
            with self.assertRaises(ReportError):
                parse_filter(kwargs.pop('mode'), **kwargs)


class AggregateTests(unittest.TestCase):
    def test_newest_first_with_customer_join_and_total(self) -> None:
        customers = [Customer.model_validate({'id': 7, 'nombres': 'Ana', 'apellidos': 'Quispe', 'celular': 70000000})]
        sales = [
            _sale(1, '2024-03-05T09:00:00Z', '10.00', user_id=7),
            _sale(2, '2024-03-05T18:00:00Z', '5.50', user_id=-1),
            _sale(3, '2024-03-06T08:00:00Z', '4.00'),
        ]

        report = aggregate(sales, customers, DayFilter(day=date(2024, 3, 5)))

        self.assertEqual([sale.id for sale in report.filtered_sales], ['2', '1'])
        self.assertEqual(
            [line.customer_label for line in report.lines],
            ['Unregistered customer', 'Ana Quispe (70000000)'],
        )
        self.assertEqual(report.total, Decimal('15.50'))
        self.assertEqual(report.label, 'day 2024-03-05')

    def test_empty_selection_totals_zero(self) -> None:
        report = aggregate([_sale(1, '2024-03-05T09:00:00Z')], [], MonthFilter(year=2023, month=1))

        self.assertEqual(report.lines, [])
        self.assertEqual(report.total, Decimal('0.00'))


class SalesReportAggregatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client, backend = fake_backend()
        self.client.sales = [
            sale_record(1, '2024-02-28T12:00:00Z', '7.00', user_id=7),
            sale_record(2, '2024-03-05T23:59:00Z', '25.50', user_id=7),
            sale_record(3, '2024-03-06T00:00:01Z', '4.00'),
        ]
        self.aggregator = SalesReportAggregator(backend)

    def test_load_once_and_refilter_locally(self) -> None:
        self.aggregator.load()
        self.aggregator.apply(RangeFilter(start=date(2024, 3, 5), end=date(2024, 3, 5)))
        first = self.aggregator.report()

        self.aggregator.apply(MonthFilter(year=2024, month=3))
        second = self.aggregator.report()

        self.assertEqual([sale.id for sale in first.filtered_sales], ['2'])
        self.assertEqual(first.total, Decimal('25.50'))
        self.assertEqual([sale.id for sale in second.filtered_sales], ['3', '2'])
        self.assertEqual(self.client.actions(), ['getSales', 'getUsers'])

    def test_select_mode_resets_parameters_and_clear_shows_all(self) -> None:
        self.aggregator.load()
        self.aggregator.apply(DayFilter(day=date(2024, 3, 5)))

        spec = self.aggregator.select_mode(FilterMode.DAY)
        self.assertEqual(spec, DayFilter())
        self.assertEqual(len(self.aggregator.report().lines), 3)

        self.aggregator.apply(DayFilter(day=date(2024, 3, 5)))
        self.assertEqual(self.aggregator.clear(), AllSales())
        self.assertEqual(self.aggregator.report().total, Decimal('36.50'))

    def test_load_failure_raises_report_error(self) -> None:
        self.client.fail('getSales')

        with self.assertRaises(ReportError):
            self.aggregator.load()
        self.assertFalse(self.aggregator.loaded)
        self.assertFalse(self.aggregator.has_sales)


if __name__ == '__main__':
    unittest.main()
