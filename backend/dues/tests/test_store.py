"""
Aidat — Record store and snapshot cache tests
"""
from datetime import date
from decimal import Decimal
from unittest import mock

from django.core.cache import caches
from django.db import OperationalError, ProgrammingError
from django.test import SimpleTestCase, TestCase

from dues.exceptions import (
    DuplicatePaymentError, RecordNotFoundError, StoreConfigurationError,
    StoreConnectionError, StoreError, StoreSchemaError, StoreTimeoutError,
)
from dues.models import Apartment, Payment
from dues.records import PAID, PaymentRecord
from dues.snapshots import SnapshotCache
from dues.store import RecordStore, classify_store_error

from .factories import apartment, payment


# ═══════════════════════════════════════════════════════════
#  ERROR CLASSIFICATION
# ═══════════════════════════════════════════════════════════

class ClassifyStoreErrorTests(SimpleTestCase):

    def test_schema(self):
        for message in ('relation "payments" does not exist', 'no such table: payments'):
            self.assertIsInstance(classify_store_error(ProgrammingError(message)),
                                  StoreSchemaError)

    def test_configuration(self):
        for message in ('FATAL: password authentication failed for user "aidat"',
                        'Invalid API key', 'JWT expired'):
            self.assertIsInstance(classify_store_error(OperationalError(message)),
                                  StoreConfigurationError)

    def test_connectivity(self):
        error = classify_store_error(OperationalError('could not connect to server'))
        self.assertIsInstance(error, StoreConnectionError)
        self.assertEqual(error.kind, 'connectivity')
        self.assertIsInstance(classify_store_error(OperationalError('timeout expired')),
                              StoreTimeoutError)
        self.assertIsInstance(classify_store_error(ConnectionRefusedError()),
                              StoreConnectionError)

    def test_anything_else_is_generic(self):
        error = classify_store_error(OperationalError('disk I/O error'))
        self.assertIs(type(error), StoreError)
        self.assertEqual(str(error.detail), 'Veri deposu hatası.')


# ═══════════════════════════════════════════════════════════
#  RECORD STORE
# ═══════════════════════════════════════════════════════════

class RecordStoreTests(TestCase):

    def setUp(self):
        self.store = RecordStore()
        self.apartment = Apartment.objects.create(apartment_number='1', owner_name='Ahmet')

    def payment_row(self, month='2024-01'):
        return PaymentRecord(id=None, apartment_id=self.apartment.id, month=month,
                             amount=Decimal('500'), due_date=date(2024, 1, 10)) \
            .to_row(include_meta=False)

    def test_insert_returns_stored_row(self):
        row = self.store.insert('payments', self.payment_row())
        self.assertIsNotNone(row['id'])
        self.assertIsNotNone(row['created_at'])
        record = PaymentRecord.from_row(row)
        self.assertEqual(record.amount, Decimal('500.00'))
        self.assertEqual(record.apartment_id, self.apartment.id)

    def test_duplicate_apartment_month_is_rejected(self):
        self.store.insert('payments', self.payment_row())
        with self.assertRaises(DuplicatePaymentError):
            self.store.insert('payments', self.payment_row())
        self.assertEqual(Payment.objects.count(), 1)

    def test_select_orders_rows(self):
        self.store.insert('payments', self.payment_row('2024-01'))
        self.store.insert('payments', self.payment_row('2024-03'))
        rows = self.store.select('payments', order_by=['-month'])
        self.assertEqual([r['month'] for r in rows], ['2024-03', '2024-01'])

    def test_update_applies_partial_fields(self):
        row = self.store.insert('payments', self.payment_row())
        updated = self.store.update('payments', row['id'], {
            'status': PAID, 'paid_amount': Decimal('500'), 'paid_date': date(2024, 1, 9),
        })
        self.assertEqual(updated['status'], PAID)
        self.assertEqual(updated['month'], '2024-01')
        self.assertGreaterEqual(updated['updated_at'], row['updated_at'])

    def test_update_missing_row(self):
        with self.assertRaises(RecordNotFoundError):
            self.store.update('apartments', 9999, {'owner_name': 'X'})

    def test_delete(self):
        self.assertTrue(self.store.delete('apartments', self.apartment.id))
        self.assertFalse(self.store.delete('apartments', self.apartment.id))

    def test_unknown_table(self):
        with self.assertRaises(StoreSchemaError):
            self.store.select('tenants')

    def test_driver_errors_are_classified(self):
        manager = mock.Mock()
        manager.all.side_effect = OperationalError('could not connect to server: Connection refused')
        with mock.patch.object(RecordStore, '_manager', return_value=manager):
            with self.assertRaises(StoreConnectionError):
                self.store.select('apartments')

    def test_driver_text_is_logged_not_returned(self):
        manager = mock.Mock()
        manager.all.side_effect = OperationalError('disk I/O error at /var/lib/pg')
        with mock.patch.object(RecordStore, '_manager', return_value=manager):
            with self.assertLogs('dues.store', level='ERROR') as logs:
                with self.assertRaises(StoreError) as ctx:
                    self.store.select('apartments')
        self.assertEqual(str(ctx.exception.detail), 'Veri deposu hatası.')
        self.assertIn('disk I/O error', logs.output[0])


# ═══════════════════════════════════════════════════════════
#  SNAPSHOT CACHE
# ═══════════════════════════════════════════════════════════

class SnapshotCacheTests(SimpleTestCase):

    def setUp(self):
        self.backend = caches['snapshots']
        self.backend.clear()
        self.cache = SnapshotCache()

    def test_round_trip_keeps_types(self):
        apartments = [apartment(1, apartment_size=Decimal('95.50'))]
        payments = [payment(1, 1, '2024-01', status=PAID, is_advance_payment=True,
                            advance_months=['2024-01', '2024-02'])]
        self.cache.save(apartments, payments)
        self.assertEqual(self.cache.load_apartments(), apartments)
        self.assertEqual(self.cache.load_payments(), payments)
        self.assertTrue(self.cache.has_snapshot())

    def test_stored_as_json_strings_under_two_keys(self):
        self.cache.save([apartment(1)], [])
        self.assertIsInstance(self.backend.get('apartments'), str)
        self.assertEqual(self.backend.get('payments'), '[]')

    def test_missing_snapshot(self):
        self.assertIsNone(self.cache.load_apartments())
        self.assertFalse(self.cache.has_snapshot())

    def test_unreadable_snapshot_is_empty(self):
        self.backend.set('payments', '{not json', None)
        self.assertEqual(self.cache.load_payments(), [])

    def test_clear(self):
        self.cache.save([apartment(1)], [payment(1)])
        self.cache.clear()
        self.assertFalse(self.cache.has_snapshot())
