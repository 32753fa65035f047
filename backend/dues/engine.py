"""
Dues engine.

Pure computation over in-memory apartment and payment records: monthly
totals and collection rate, bulk monthly generation, payment entry,
advance-payment reconciliation, overdue detection. Nothing here touches the
store or the cache; functions return new records and let the service persist
them.

Example:
    Planning a three month advance payment::

        plan = plan_advance_payment(apartment, '2024-11', 3,
                                    Decimal('500'), Decimal('1500'), payments)
        [p.month for p in plan.new_payments]
        # ['2024-11', '2024-12', '2025-01']
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .exceptions import (
    AdvanceAmountMismatch, InvalidMonthCount, InvalidPaymentAmount, NothingToProcess,
)
from .records import PAID, PARTIAL, PENDING, PaymentRecord, to_decimal

AMOUNT_TOLERANCE = Decimal('0.01')
MIN_ADVANCE_MONTHS = 1
MAX_ADVANCE_MONTHS = 12
ZERO = Decimal('0')
HUNDRED = Decimal('100')

_MONTH_RE = re.compile(r'^(\d{4})-(0[1-9]|1[0-2])$')


# ═══════════════════════════════════════════════════════════
#  MONTH KEYS
# ═══════════════════════════════════════════════════════════

def parse_month(month):
    """'2024-03' -> (2024, 3). Raises ValueError for anything else."""
    match = _MONTH_RE.match(month or '')
    if not match:
        raise ValueError(f'Geçersiz ay: {month!r} (YYYY-MM bekleniyor)')
    return int(match.group(1)), int(match.group(2))


def month_key(day):
    return f'{day.year}-{day.month:02d}'


def first_day(month):
    year, mon = parse_month(month)
    return date(year, mon, 1)


def add_months(month, count):
    year, mon = parse_month(month)
    index = year * 12 + (mon - 1) + count
    return f'{index // 12}-{index % 12 + 1:02d}'


def generate_month_list(start_month, count):
    """`count` consecutive month keys starting at start_month."""
    return [add_months(start_month, i) for i in range(count)]


# ═══════════════════════════════════════════════════════════
#  MONTHLY SUMMARY
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MonthlySummary:
    month: str
    total_due: Decimal
    total_collected: Decimal
    pending_amount: Decimal
    collection_rate: Decimal
    paid_count: int
    unpaid_count: int
    partial_count: int
    pending_count: int

    @property
    def record_count(self):
        return self.paid_count + self.unpaid_count


def collection_rate(total_collected, total_due):
    if total_due <= 0:
        return ZERO
    return (total_collected / total_due * HUNDRED).quantize(Decimal('0.01'))


def summarize_month(payments, month):
    monthly = [p for p in payments if p.month == month]
    total_due = sum((p.amount for p in monthly), ZERO)
    total_collected = sum(
        (p.paid_amount for p in monthly if p.status in (PAID, PARTIAL)), ZERO
    )
    partial_count = sum(1 for p in monthly if p.status == PARTIAL)
    pending_count = sum(1 for p in monthly if p.status == PENDING)
    return MonthlySummary(
        month=month,
        total_due=total_due,
        total_collected=total_collected,
        pending_amount=total_due - total_collected,
        collection_rate=collection_rate(total_collected, total_due),
        paid_count=sum(1 for p in monthly if p.status == PAID),
        unpaid_count=partial_count + pending_count,
        partial_count=partial_count,
        pending_count=pending_count,
    )


# ═══════════════════════════════════════════════════════════
#  BULK MONTHLY GENERATION
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DuesGeneration:
    month: str
    created: List[PaymentRecord]
    skipped: int

    @property
    def created_count(self):
        return len(self.created)


def find_payment(payments, apartment_id, month) -> Optional[PaymentRecord]:
    for payment in payments:
        if payment.apartment_id == apartment_id and payment.month == month:
            return payment
    return None


def generate_monthly_dues(apartments, existing_payments, month, amount, due_date):
    """
    Build a pending record for every apartment without one for `month`.
    Existing records are never touched; the result is not persisted.
    """
    parse_month(month)
    amount = to_decimal(amount)
    if amount <= 0:
        raise InvalidPaymentAmount('Aidat tutarı 0\'dan büyük olmalıdır!', amount=amount)

    taken = {p.apartment_id for p in existing_payments if p.month == month}
    created, skipped = [], 0
    for apartment in apartments:
        if apartment.id in taken:
            skipped += 1
            continue
        taken.add(apartment.id)
        created.append(PaymentRecord(
            id=None,
            apartment_id=apartment.id,
            month=month,
            amount=amount,
            due_date=due_date,
        ))
    return DuesGeneration(month=month, created=created, skipped=skipped)


# ═══════════════════════════════════════════════════════════
#  PAYMENT ENTRY
# ═══════════════════════════════════════════════════════════

def apply_payment(payment, paid_amount, today=None):
    paid_amount = to_decimal(paid_amount)
    if paid_amount <= 0:
        raise InvalidPaymentAmount('Ödenen tutar 0\'dan büyük olmalıdır!',
                                   paid_amount=paid_amount)
    if paid_amount > payment.amount:
        raise InvalidPaymentAmount('Ödenen tutar toplam tutardan fazla olamaz!',
                                   paid_amount=paid_amount, amount=payment.amount)
    status = PAID if paid_amount >= payment.amount else PARTIAL
    return payment.with_changes(
        status=status,
        paid_amount=paid_amount,
        paid_date=today or date.today(),
    )


def mark_fully_paid(payment, today=None):
    return apply_payment(payment, payment.amount, today=today)


def revert_to_pending(payment):
    return payment.with_changes(status=PENDING, paid_amount=ZERO, paid_date=None)


def edit_payment(payment, amount=None, due_date=None, status=None, paid_amount=None,
                 today=None):
    """
    General edit of a dues record. The chosen status decides the paid side:
    paid settles the full amount, pending clears it, partial keeps the
    entered paid amount (which must be strictly between 0 and amount).
    """
    amount = payment.amount if amount is None else to_decimal(amount)
    if amount <= 0:
        raise InvalidPaymentAmount('Aidat tutarı 0\'dan büyük olmalıdır!', amount=amount)
    due_date = due_date or payment.due_date
    status = status or payment.status
    today = today or date.today()

    if status == PAID:
        return payment.with_changes(amount=amount, due_date=due_date, status=PAID,
                                    paid_amount=amount, paid_date=today)
    if status == PENDING:
        return payment.with_changes(amount=amount, due_date=due_date, status=PENDING,
                                    paid_amount=ZERO, paid_date=None)

    paid_amount = payment.paid_amount if paid_amount is None else to_decimal(paid_amount)
    if not ZERO < paid_amount < amount:
        raise InvalidPaymentAmount('Kısmi ödeme 0 ile toplam tutar arasında olmalıdır!',
                                   paid_amount=paid_amount, amount=amount)
    return payment.with_changes(amount=amount, due_date=due_date, status=PARTIAL,
                                paid_amount=paid_amount, paid_date=today)


def consistency_errors(payment):
    """Ways in which a record breaks the status / paid amount invariants."""
    errors = []
    if payment.status == PENDING:
        if payment.paid_amount != 0:
            errors.append('pending record has a paid amount')
        if payment.paid_date is not None:
            errors.append('pending record has a paid date')
    elif payment.status == PARTIAL:
        if not ZERO < payment.paid_amount < payment.amount:
            errors.append('partial record paid amount out of range')
        if payment.paid_date is None:
            errors.append('partial record has no paid date')
    elif payment.status == PAID:
        if payment.paid_amount != payment.amount:
            errors.append('paid record paid amount differs from amount')
        if payment.paid_date is None:
            errors.append('paid record has no paid date')
    else:
        errors.append(f'unknown status {payment.status!r}')
    return errors


# ═══════════════════════════════════════════════════════════
#  ADVANCE PAYMENTS
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AdvancePlan:
    apartment_id: int
    months: List[str]
    monthly_amount: Decimal
    total_paid: Decimal
    expected_total: Decimal
    new_payments: List[PaymentRecord] = field(default_factory=list)
    settled_payments: List[PaymentRecord] = field(default_factory=list)
    already_paid_months: List[str] = field(default_factory=list)
    partial_months: List[str] = field(default_factory=list)

    @property
    def process_count(self):
        return len(self.new_payments) + len(self.settled_payments)


def plan_advance_payment(apartment, start_month, month_count, monthly_amount, total_paid,
                         existing_payments, today=None):
    """
    Validate an advance payment and lay out the records it produces.

    Months already paid for the apartment are skipped. Months holding a
    partial record are skipped too, so the amount collected on them stays on
    the books. Months holding a pending record settle that record instead of
    adding a second one.
    """
    month_count = int(month_count)
    if not MIN_ADVANCE_MONTHS <= month_count <= MAX_ADVANCE_MONTHS:
        raise InvalidMonthCount(
            f'Ay sayısı {MIN_ADVANCE_MONTHS} ile {MAX_ADVANCE_MONTHS} arasında olmalıdır!',
            month_count=month_count,
        )

    monthly_amount = to_decimal(monthly_amount)
    total_paid = to_decimal(total_paid)
    expected_total = monthly_amount * month_count
    difference = total_paid - expected_total
    if monthly_amount <= 0 or total_paid <= 0 or abs(difference) > AMOUNT_TOLERANCE:
        raise AdvanceAmountMismatch('Tutar hesaplama hatası!',
                                    difference=difference, expected_total=expected_total)

    today = today or date.today()
    months = generate_month_list(start_month, month_count)
    current = {p.month: p for p in existing_payments if p.apartment_id == apartment.id}

    new_payments, settled, already_paid, partial = [], [], [], []
    for month in months:
        existing = current.get(month)
        if existing is not None and existing.is_paid:
            already_paid.append(month)
            continue
        if existing is not None and existing.status == PARTIAL:
            partial.append(month)
            continue
        paid_fields = dict(
            amount=monthly_amount,
            paid_amount=monthly_amount,
            status=PAID,
            paid_date=today,
            due_date=first_day(month),
            is_advance_payment=True,
            advance_months=list(months),
        )
        if existing is not None:
            settled.append(existing.with_changes(**paid_fields))
        else:
            new_payments.append(PaymentRecord(id=None, apartment_id=apartment.id,
                                              month=month, **paid_fields))

    if not new_payments and not settled:
        raise NothingToProcess('Seçilen tüm aylar için zaten ödeme yapılmış!', months=months)

    return AdvancePlan(
        apartment_id=apartment.id,
        months=months,
        monthly_amount=monthly_amount,
        total_paid=total_paid,
        expected_total=expected_total,
        new_payments=new_payments,
        settled_payments=settled,
        already_paid_months=already_paid,
        partial_months=partial,
    )


@dataclass(frozen=True)
class AdvanceBatch:
    apartment_id: int
    paid_date: Optional[date]
    months: List[str]
    total_amount: Decimal


def advance_history(payments):
    """Advance records grouped by (apartment, paid date), newest first."""
    batches: Dict[tuple, dict] = {}
    for payment in payments:
        if not payment.is_advance_payment:
            continue
        key = (payment.apartment_id, payment.paid_date)
        batch = batches.setdefault(key, {'months': [], 'total': ZERO})
        batch['months'].append(payment.month)
        batch['total'] += payment.paid_amount

    history = [
        AdvanceBatch(apartment_id=apt_id, paid_date=paid_date,
                     months=sorted(batch['months']), total_amount=batch['total'])
        for (apt_id, paid_date), batch in batches.items()
    ]
    history.sort(key=lambda b: b.paid_date or date.min, reverse=True)
    return history


# ═══════════════════════════════════════════════════════════
#  OVERDUE / DEBT
# ═══════════════════════════════════════════════════════════

def _as_date(value):
    return value.date() if isinstance(value, datetime) else value


def is_overdue(due_date, reference=None):
    """Due strictly before the reference day; due today is not overdue."""
    due_date = _as_date(due_date)
    reference = _as_date(reference) or date.today()
    return due_date < reference and due_date != reference


def days_late(due_date, reference=None):
    due_date = _as_date(due_date)
    reference = _as_date(reference) or date.today()
    if not is_overdue(due_date, reference):
        return 0
    return (reference - due_date).days


@dataclass(frozen=True)
class ApartmentDebt:
    apartment_id: int
    total_debt: Decimal
    months: List[str]
    payments: List[PaymentRecord]


def debts_by_apartment(payments: Iterable[PaymentRecord]):
    """Outstanding debt per apartment over its pending and partial records."""
    grouped: Dict[int, List[PaymentRecord]] = {}
    for payment in payments:
        if payment.is_unpaid:
            grouped.setdefault(payment.apartment_id, []).append(payment)

    debts = {}
    for apartment_id, owed in grouped.items():
        owed.sort(key=lambda p: p.month)
        debts[apartment_id] = ApartmentDebt(
            apartment_id=apartment_id,
            total_debt=sum((p.remaining for p in owed), ZERO),
            months=[p.month for p in owed],
            payments=owed,
        )
    return debts


# ═══════════════════════════════════════════════════════════
#  DASHBOARD
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Dashboard:
    apartment_count: int
    summary: MonthlySummary
    recent_payments: List[PaymentRecord]
    upcoming_dues: List[PaymentRecord]
    advance_payment_count: int


def dashboard(apartments, payments, month, limit=5):
    summary = summarize_month(payments, month)
    recent = sorted((p for p in payments if p.paid_date),
                    key=lambda p: p.paid_date, reverse=True)[:limit]
    upcoming = sorted((p for p in payments if p.month == month and not p.is_paid),
                      key=lambda p: p.due_date)[:limit]
    return Dashboard(
        apartment_count=len(apartments),
        summary=summary,
        recent_payments=recent,
        upcoming_dues=upcoming,
        advance_payment_count=sum(1 for p in payments if p.is_advance_payment),
    )
