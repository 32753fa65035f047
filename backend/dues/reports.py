"""
Aidat — Reports

Filtered, sorted view of the dues records joined with their apartments,
period totals, and the CSV export of that same view.
"""
import csv
import io
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from . import engine
from .exceptions import EmptyReportError
from .records import PAID, PARTIAL, PENDING, ApartmentRecord, PaymentRecord

STATUS_LABELS = {
    PAID: 'Ödendi',
    PARTIAL: 'Kısmi',
    PENDING: 'Bekliyor',
}
STATUS_ALL = 'all'
STATUS_OVERDUE = 'overdue'
STATUS_FILTERS = (STATUS_ALL, PAID, PARTIAL, PENDING, STATUS_OVERDUE)

SORT_APARTMENT = 'apartment_number'
SORT_FIELDS = (SORT_APARTMENT, 'owner', 'amount', 'due_date', 'paid_date')

CSV_HEADERS = ['Daire', 'Sahibi', 'Ay', 'Tutar', 'Ödenen', 'Kalan', 'Durum',
               'Son Ödeme Tarihi', 'Ödeme Tarihi']

_NO_PAID_DATE = date(1900, 1, 1)
_LEADING_DIGITS = re.compile(r'^\s*(\d+)')


@dataclass(frozen=True)
class ReportQuery:
    period: str = ''
    search: str = ''
    status: str = STATUS_ALL
    sort: str = SORT_APARTMENT
    descending: bool = False


@dataclass(frozen=True)
class ReportRow:
    payment: PaymentRecord
    apartment: Optional[ApartmentRecord]

    @property
    def apartment_number(self):
        return self.apartment.apartment_number if self.apartment else ''

    @property
    def owner_name(self):
        return self.apartment.owner_name if self.apartment else ''

    @property
    def status_label(self):
        return STATUS_LABELS.get(self.payment.status, self.payment.status)


@dataclass(frozen=True)
class ReportTotals:
    total_amount: Decimal
    total_collected: Decimal
    pending_amount: Decimal
    collection_rate: Decimal


@dataclass(frozen=True)
class Report:
    query: ReportQuery
    rows: List[ReportRow]
    totals: ReportTotals


def in_period(month, period):
    """A 'YYYY' period matches the whole year, 'YYYY-MM' one month."""
    if not period:
        return True
    if len(period) == 4:
        return month.startswith(period + '-')
    return month == period


def apartment_number_key(number):
    match = _LEADING_DIGITS.match(number or '')
    return int(match.group(1)) if match else 0


def _sort_key(sort):
    if sort == 'owner':
        return lambda row: row.owner_name.casefold()
    if sort == 'amount':
        return lambda row: row.payment.amount
    if sort == 'due_date':
        return lambda row: row.payment.due_date
    if sort == 'paid_date':
        return lambda row: row.payment.paid_date or _NO_PAID_DATE
    return lambda row: apartment_number_key(row.apartment_number)


def _matches_status(payment, status, today):
    if status == STATUS_ALL:
        return True
    if status == STATUS_OVERDUE:
        return not payment.is_paid and engine.is_overdue(payment.due_date, today)
    return payment.status == status


def totals_for(payments):
    total = sum((p.amount for p in payments), engine.ZERO)
    collected = sum((p.paid_amount for p in payments if p.status in (PAID, PARTIAL)),
                    engine.ZERO)
    return ReportTotals(
        total_amount=total,
        total_collected=collected,
        pending_amount=total - collected,
        collection_rate=engine.collection_rate(collected, total),
    )


def build_report(apartments, payments, query=None, today=None):
    query = query or ReportQuery()
    today = today or date.today()
    by_id = {a.id: a for a in apartments}
    search = query.search.strip().casefold()

    rows = []
    for payment in payments:
        if not in_period(payment.month, query.period):
            continue
        row = ReportRow(payment=payment, apartment=by_id.get(payment.apartment_id))
        if search and search not in row.apartment_number.casefold() \
                and search not in row.owner_name.casefold():
            continue
        if not _matches_status(payment, query.status, today):
            continue
        rows.append(row)

    rows.sort(key=_sort_key(query.sort), reverse=query.descending)
    return Report(query=query, rows=rows, totals=totals_for([r.payment for r in rows]))


# ─── CSV export ────────────────────────────────────────────────────

def _plain(amount):
    """500.00 -> '500', 250.50 -> '250.5'."""
    return format(amount.normalize(), 'f')


def export_filename(period):
    return f'aidat-raporu-{period or "tumu"}.csv'


def export_csv(report):
    """The report rows as UTF-8 CSV text with a BOM, every field quoted."""
    if not report.rows:
        raise EmptyReportError('Dışa aktarılacak veri bulunamadı!')

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for row in report.rows:
        payment = row.payment
        writer.writerow([
            row.apartment_number,
            row.owner_name,
            payment.month,
            _plain(payment.amount),
            _plain(payment.paid_amount),
            _plain(payment.remaining),
            row.status_label,
            payment.due_date.isoformat(),
            payment.paid_date.isoformat() if payment.paid_date else '-',
        ])
    return '\ufeff' + buffer.getvalue()
