"""
Aidat — Dues engine tests
Pure computation, no database.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.test import SimpleTestCase

from dues import engine
from dues.exceptions import (
    AdvanceAmountMismatch, InvalidMonthCount, InvalidPaymentAmount, NothingToProcess,
)
from dues.records import PAID, PARTIAL, PENDING

from .factories import apartment, payment

TODAY = date(2024, 3, 15)


# ═══════════════════════════════════════════════════════════
#  MONTH KEYS
# ═══════════════════════════════════════════════════════════

class MonthKeyTests(SimpleTestCase):

    def test_add_months_crosses_year(self):
        self.assertEqual(engine.add_months('2024-12', 1), '2025-01')
        self.assertEqual(engine.add_months('2024-01', -1), '2023-12')
        self.assertEqual(engine.add_months('2024-05', 0), '2024-05')

    def test_generate_month_list(self):
        self.assertEqual(engine.generate_month_list('2024-11', 3),
                         ['2024-11', '2024-12', '2025-01'])

    def test_parse_month_rejects_garbage(self):
        for bad in ('2024-13', '2024-1', '24-01', '', None):
            with self.assertRaises(ValueError):
                engine.parse_month(bad)

    def test_month_key_and_first_day(self):
        self.assertEqual(engine.month_key(date(2024, 7, 31)), '2024-07')
        self.assertEqual(engine.first_day('2024-02'), date(2024, 2, 1))


# ═══════════════════════════════════════════════════════════
#  MONTHLY SUMMARY
# ═══════════════════════════════════════════════════════════

class SummaryTests(SimpleTestCase):

    def test_summary_totals(self):
        payments = [
            payment(1, 1, '2024-01', status=PAID),
            payment(2, 2, '2024-01', status=PARTIAL, paid_amount='200'),
            payment(3, 3, '2024-01'),
            payment(4, 1, '2024-02', status=PAID),
        ]
        summary = engine.summarize_month(payments, '2024-01')
        self.assertEqual(summary.total_due, Decimal('1500'))
        self.assertEqual(summary.total_collected, Decimal('700'))
        self.assertEqual(summary.pending_amount, Decimal('800'))
        self.assertEqual(summary.collection_rate, Decimal('46.67'))
        self.assertEqual(summary.paid_count, 1)
        self.assertEqual(summary.unpaid_count, 2)
        self.assertEqual(summary.partial_count, 1)
        self.assertEqual(summary.pending_count, 1)

    def test_empty_month_has_zero_rate(self):
        summary = engine.summarize_month([payment(1, 1, '2024-02', status=PAID)], '2024-01')
        self.assertEqual(summary.total_due, 0)
        self.assertEqual(summary.collection_rate, 0)
        self.assertEqual(summary.record_count, 0)

    def test_fully_collected_month(self):
        payments = [payment(1, 1, status=PAID), payment(2, 2, status=PAID)]
        self.assertEqual(engine.summarize_month(payments, '2024-01').collection_rate,
                         Decimal('100.00'))


# ═══════════════════════════════════════════════════════════
#  BULK GENERATION
# ═══════════════════════════════════════════════════════════

class GenerateMonthlyDuesTests(SimpleTestCase):

    def setUp(self):
        self.apartments = [apartment(1), apartment(2), apartment(3)]

    def test_skips_apartments_that_already_have_a_record(self):
        existing = [payment(10, 1, '2024-03', status=PAID), payment(11, 2, '2024-02')]
        result = engine.generate_monthly_dues(self.apartments, existing, '2024-03',
                                              Decimal('500'), date(2024, 3, 10))
        self.assertEqual(result.created_count, 2)
        self.assertEqual(result.skipped, 1)
        self.assertEqual({p.apartment_id for p in result.created}, {2, 3})
        for record in result.created:
            self.assertEqual(record.status, PENDING)
            self.assertEqual(record.paid_amount, 0)
            self.assertIsNone(record.paid_date)
            self.assertEqual(record.due_date, date(2024, 3, 10))

    def test_running_twice_creates_nothing_new(self):
        first = engine.generate_monthly_dues(self.apartments, [], '2024-03', '500',
                                             date(2024, 3, 10))
        second = engine.generate_monthly_dues(self.apartments, first.created, '2024-03', '500',
                                              date(2024, 3, 10))
        self.assertEqual(first.created_count, 3)
        self.assertEqual(second.created_count, 0)
        self.assertEqual(second.skipped, 3)

    def test_rejects_non_positive_amount(self):
        with self.assertRaises(InvalidPaymentAmount):
            engine.generate_monthly_dues(self.apartments, [], '2024-03', '0', date(2024, 3, 10))


# ═══════════════════════════════════════════════════════════
#  PAYMENT ENTRY
# ═══════════════════════════════════════════════════════════

class PaymentEntryTests(SimpleTestCase):

    def setUp(self):
        self.pending = payment(1, 1, '2024-03')

    def test_rejects_zero_negative_and_overpayment(self):
        for amount in ('0', '-10', '500.01'):
            with self.assertRaises(InvalidPaymentAmount):
                engine.apply_payment(self.pending, amount, today=TODAY)

    def test_partial_payment(self):
        result = engine.apply_payment(self.pending, '200', today=TODAY)
        self.assertEqual(result.status, PARTIAL)
        self.assertEqual(result.paid_amount, Decimal('200'))
        self.assertEqual(result.paid_date, TODAY)
        self.assertEqual(result.remaining, Decimal('300'))
        self.assertEqual(engine.consistency_errors(result), [])

    def test_full_payment(self):
        result = engine.apply_payment(self.pending, '500', today=TODAY)
        self.assertEqual(result.status, PAID)
        self.assertEqual(result.paid_amount, result.amount)
        self.assertEqual(result.paid_date, TODAY)

    def test_mark_fully_paid_matches_apply_of_amount(self):
        self.assertEqual(engine.mark_fully_paid(self.pending, today=TODAY),
                         engine.apply_payment(self.pending, self.pending.amount, today=TODAY))

    def test_revert_clears_paid_side(self):
        paid = engine.mark_fully_paid(self.pending, today=TODAY)
        reverted = engine.revert_to_pending(paid)
        self.assertEqual(reverted.status, PENDING)
        self.assertEqual(reverted.paid_amount, 0)
        self.assertIsNone(reverted.paid_date)
        self.assertEqual(engine.consistency_errors(reverted), [])

    def test_original_record_is_untouched(self):
        engine.apply_payment(self.pending, '500', today=TODAY)
        self.assertEqual(self.pending.status, PENDING)


class EditPaymentTests(SimpleTestCase):

    def setUp(self):
        self.record = payment(1, 1, '2024-03', status=PARTIAL, paid_amount='100')

    def test_paid_takes_the_new_amount(self):
        result = engine.edit_payment(self.record, amount='600', status=PAID, today=TODAY)
        self.assertEqual(result.paid_amount, Decimal('600'))
        self.assertEqual(result.paid_date, TODAY)

    def test_pending_clears_paid_side(self):
        result = engine.edit_payment(self.record, status=PENDING, today=TODAY)
        self.assertEqual(result.paid_amount, 0)
        self.assertIsNone(result.paid_date)

    def test_partial_must_stay_below_amount(self):
        with self.assertRaises(InvalidPaymentAmount):
            engine.edit_payment(self.record, status=PARTIAL, paid_amount='500', today=TODAY)
        result = engine.edit_payment(self.record, status=PARTIAL, paid_amount='300',
                                     today=TODAY)
        self.assertEqual(result.paid_amount, Decimal('300'))

    def test_due_date_only_keeps_status(self):
        result = engine.edit_payment(self.record, due_date=date(2024, 3, 20), today=TODAY)
        self.assertEqual(result.status, PARTIAL)
        self.assertEqual(result.paid_amount, Decimal('100'))
        self.assertEqual(result.due_date, date(2024, 3, 20))

    def test_consistency_errors_flags_broken_records(self):
        broken = payment(2, 1, status=PAID).with_changes(paid_amount=Decimal('10'))
        self.assertEqual(len(engine.consistency_errors(broken)), 1)


# ═══════════════════════════════════════════════════════════
#  ADVANCE PAYMENTS
# ═══════════════════════════════════════════════════════════

class AdvancePaymentTests(SimpleTestCase):

    def setUp(self):
        self.apartment = apartment(1)

    def test_three_months_exact(self):
        plan = engine.plan_advance_payment(self.apartment, '2024-01', 3, Decimal('500'),
                                           Decimal('1500'), [], today=TODAY)
        self.assertEqual([p.month for p in plan.new_payments],
                         ['2024-01', '2024-02', '2024-03'])
        for record in plan.new_payments:
            self.assertEqual(record.status, PAID)
            self.assertEqual(record.paid_amount, Decimal('500'))
            self.assertEqual(record.amount, Decimal('500'))
            self.assertEqual(record.paid_date, TODAY)
            self.assertTrue(record.is_advance_payment)
            self.assertEqual(record.advance_months, ['2024-01', '2024-02', '2024-03'])
            self.assertEqual(record.due_date, engine.first_day(record.month))
        self.assertEqual(plan.expected_total, Decimal('1500'))
        self.assertEqual(plan.process_count, 3)

    def test_mismatch_reports_difference(self):
        with self.assertRaises(AdvanceAmountMismatch) as ctx:
            engine.plan_advance_payment(self.apartment, '2024-01', 3, '500', '1499', [])
        self.assertEqual(ctx.exception.difference, Decimal('-1'))
        self.assertEqual(ctx.exception.expected_total, Decimal('1500'))
        self.assertEqual(ctx.exception.as_payload()['code'], 'amount_mismatch')

    def test_difference_within_a_cent_is_accepted(self):
        plan = engine.plan_advance_payment(self.apartment, '2024-01', 3, '333.33', '1000',
                                           [], today=TODAY)
        self.assertEqual(len(plan.new_payments), 3)

    def test_spans_year_boundary(self):
        plan = engine.plan_advance_payment(self.apartment, '2024-11', 3, '500', '1500', [],
                                           today=TODAY)
        self.assertEqual(plan.months, ['2024-11', '2024-12', '2025-01'])

    def test_month_count_bounds(self):
        for count in (0, 13):
            with self.assertRaises(InvalidMonthCount):
                engine.plan_advance_payment(self.apartment, '2024-01', count, '500', '500', [])

    def test_existing_records_are_skipped_or_settled(self):
        existing = [
            payment(7, 1, '2024-02', status=PAID),
            payment(8, 1, '2024-03'),
            payment(9, 2, '2024-01'),
        ]
        plan = engine.plan_advance_payment(self.apartment, '2024-01', 3, '500', '1500',
                                           existing, today=TODAY)
        self.assertEqual(plan.already_paid_months, ['2024-02'])
        self.assertEqual([p.month for p in plan.new_payments], ['2024-01'])
        self.assertEqual(len(plan.settled_payments), 1)
        settled = plan.settled_payments[0]
        self.assertEqual(settled.id, 8)
        self.assertEqual(settled.status, PAID)
        self.assertTrue(settled.is_advance_payment)

    def test_partial_month_keeps_collected_amount(self):
        existing = [payment(5, 1, '2024-01', status=PARTIAL, paid_amount='100')]
        plan = engine.plan_advance_payment(self.apartment, '2024-01', 2, '500', '1000',
                                           existing, today=TODAY)
        self.assertEqual(plan.partial_months, ['2024-01'])
        self.assertEqual(plan.settled_payments, [])
        self.assertEqual([p.month for p in plan.new_payments], ['2024-02'])
        self.assertEqual(existing[0].paid_amount, Decimal('100'))

    def test_only_partial_months_is_nothing_to_process(self):
        existing = [payment(5, 1, '2024-01', status=PARTIAL, paid_amount='100')]
        with self.assertRaises(NothingToProcess):
            engine.plan_advance_payment(self.apartment, '2024-01', 1, '500', '500', existing)

    def test_all_months_paid_is_nothing_to_process(self):
        existing = [payment(7, 1, '2024-01', status=PAID)]
        with self.assertRaises(NothingToProcess):
            engine.plan_advance_payment(self.apartment, '2024-01', 1, '500', '500', existing)

    def test_history_groups_by_apartment_and_paid_date(self):
        records = [
            payment(1, 1, '2024-01', status=PAID, is_advance_payment=True,
                    paid_date=date(2024, 1, 2)),
            payment(2, 1, '2024-02', status=PAID, is_advance_payment=True,
                    paid_date=date(2024, 1, 2)),
            payment(3, 2, '2024-05', status=PAID, is_advance_payment=True,
                    paid_date=date(2024, 4, 1)),
            payment(4, 2, '2024-04', status=PAID),
        ]
        history = engine.advance_history(records)
        self.assertEqual(len(history), 2)
        self.assertEqual(history[0].apartment_id, 2)
        self.assertEqual(history[1].months, ['2024-01', '2024-02'])
        self.assertEqual(history[1].total_amount, Decimal('1000'))


# ═══════════════════════════════════════════════════════════
#  OVERDUE / DEBT / DASHBOARD
# ═══════════════════════════════════════════════════════════

class OverdueTests(SimpleTestCase):

    def test_due_today_is_not_overdue(self):
        self.assertFalse(engine.is_overdue(TODAY, TODAY))
        self.assertFalse(engine.is_overdue(TODAY, datetime(2024, 3, 15, 23, 59)))

    def test_due_yesterday_is_overdue(self):
        self.assertTrue(engine.is_overdue(TODAY - timedelta(days=1), TODAY))
        self.assertFalse(engine.is_overdue(TODAY + timedelta(days=1), TODAY))

    def test_days_late(self):
        self.assertEqual(engine.days_late(date(2024, 3, 5), TODAY), 10)
        self.assertEqual(engine.days_late(TODAY, TODAY), 0)
        self.assertEqual(engine.days_late(date(2024, 4, 1), TODAY), 0)


class DebtTests(SimpleTestCase):

    def test_debts_by_apartment(self):
        payments = [
            payment(1, 1, '2024-02'),
            payment(2, 1, '2024-01', status=PARTIAL, paid_amount='150'),
            payment(3, 1, '2024-03', status=PAID),
            payment(4, 2, '2024-01', status=PAID),
        ]
        debts = engine.debts_by_apartment(payments)
        self.assertEqual(list(debts), [1])
        self.assertEqual(debts[1].total_debt, Decimal('850'))
        self.assertEqual(debts[1].months, ['2024-01', '2024-02'])


class DashboardTests(SimpleTestCase):

    def test_dashboard(self):
        apartments = [apartment(1), apartment(2), apartment(3)]
        payments = [
            payment(1, 1, '2024-03', status=PAID, paid_date=date(2024, 3, 2)),
            payment(2, 2, '2024-03', due_date=date(2024, 3, 20)),
            payment(3, 3, '2024-03', due_date=date(2024, 3, 5)),
            payment(4, 1, '2024-04', status=PAID, paid_date=date(2024, 3, 1),
                    is_advance_payment=True),
        ]
        board = engine.dashboard(apartments, payments, '2024-03')
        self.assertEqual(board.apartment_count, 3)
        self.assertEqual(board.summary.paid_count, 1)
        self.assertEqual([p.id for p in board.recent_payments], [1, 4])
        self.assertEqual([p.id for p in board.upcoming_dues], [3, 2])
        self.assertEqual(board.advance_payment_count, 1)
