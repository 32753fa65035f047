from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from dues import reports
from dues.exceptions import EmptyReportError
from dues.records import PAID, PARTIAL
from dues.reports import ReportQuery

from .factories import apartment, payment

TODAY = date(2024, 2, 15)


class ReportTests(SimpleTestCase):

    def setUp(self):
        self.apartments = [
            apartment(1, '10', owner='Zeynep Ak'),
            apartment(2, '2', owner='ahmet Bal'),
            apartment(3, '3A', owner='Can Er'),
        ]
        self.payments = [
            payment(1, 1, '2024-01', status=PARTIAL, paid_amount='200'),
            payment(2, 2, '2024-01', status=PAID, paid_date=date(2024, 1, 8)),
            payment(3, 3, '2024-01'),
            payment(4, 1, '2024-02', due_date=date(2024, 2, 20)),
            payment(5, 2, '2023-12', status=PAID, paid_date=date(2023, 12, 3)),
        ]

    def build(self, **query):
        return reports.build_report(self.apartments, self.payments, ReportQuery(**query),
                                    today=TODAY)

    def ids(self, report):
        return [row.payment.id for row in report.rows]

    def test_month_and_year_periods(self):
        self.assertEqual(sorted(self.ids(self.build(period='2024-01'))), [1, 2, 3])
        self.assertEqual(sorted(self.ids(self.build(period='2024'))), [1, 2, 3, 4])
        self.assertEqual(len(self.build().rows), 5)

    def test_search_is_case_insensitive_on_number_or_owner(self):
        self.assertEqual(self.ids(self.build(period='2024-01', search='AHM')), [2])
        self.assertEqual(self.ids(self.build(period='2024-01', search='3a')), [3])

    def test_status_filters(self):
        self.assertEqual(self.ids(self.build(period='2024', status=PARTIAL)), [1])
        # Due 2024-01-10 and unpaid; the February record is not due yet.
        self.assertEqual(sorted(self.ids(self.build(period='2024', status='overdue'))), [1, 3])

    def test_sort_by_apartment_number_is_numeric(self):
        report = self.build(period='2024-01')
        self.assertEqual([r.apartment_number for r in report.rows], ['2', '3A', '10'])
        report = self.build(period='2024-01', descending=True)
        self.assertEqual([r.apartment_number for r in report.rows], ['10', '3A', '2'])

    def test_sort_by_owner_and_paid_date(self):
        report = self.build(period='2024-01', sort='owner')
        self.assertEqual([r.owner_name for r in report.rows], ['ahmet Bal', 'Can Er', 'Zeynep Ak'])
        report = self.build(period='2024-01', sort='paid_date', descending=True)
        self.assertEqual(self.ids(report), [2, 1, 3])

    def test_totals(self):
        totals = self.build(period='2024-01').totals
        self.assertEqual(totals.total_amount, Decimal('1500'))
        self.assertEqual(totals.total_collected, Decimal('700'))
        self.assertEqual(totals.pending_amount, Decimal('800'))
        self.assertEqual(totals.collection_rate, Decimal('46.67'))

    def test_apartment_number_key(self):
        self.assertEqual(reports.apartment_number_key('12B'), 12)
        self.assertEqual(reports.apartment_number_key('B-12'), 0)


class CsvExportTests(SimpleTestCase):

    def setUp(self):
        self.apartments = [apartment(1, '10', owner='Zeynep Ak')]
        self.payments = [
            payment(1, 1, '2024-01', status=PARTIAL, paid_amount='200',
                    paid_date=date(2024, 1, 5)),
            payment(2, 1, '2024-02', amount='500.50'),
        ]

    def test_csv_layout(self):
        report = reports.build_report(self.apartments, self.payments,
                                      ReportQuery(sort='due_date'), today=TODAY)
        content = reports.export_csv(report)
        self.assertTrue(content.startswith('\ufeff'))
        lines = content.lstrip('\ufeff').splitlines()
        self.assertEqual(lines[0], '"Daire","Sahibi","Ay","Tutar","Ödenen","Kalan","Durum",'
                                   '"Son Ödeme Tarihi","Ödeme Tarihi"')
        self.assertEqual(lines[1], '"10","Zeynep Ak","2024-01","500","200","300","Kısmi",'
                                   '"2024-01-10","2024-01-05"')
        self.assertEqual(lines[2], '"10","Zeynep Ak","2024-02","500.5","0","500.5","Bekliyor",'
                                   '"2024-02-10","-"')

    def test_empty_view_cannot_be_exported(self):
        report = reports.build_report(self.apartments, self.payments,
                                      ReportQuery(period='2030'), today=TODAY)
        with self.assertRaises(EmptyReportError):
            reports.export_csv(report)

    def test_filename(self):
        self.assertEqual(reports.export_filename('2024-01'), 'aidat-raporu-2024-01.csv')
