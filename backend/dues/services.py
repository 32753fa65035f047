"""
Aidat — Dues service

Orchestrates the record store, the local snapshot cache and the dues engine.
One service instance serves one request: it loads both tables (concurrently,
raced against DUES_LOAD_TIMEOUT), falls back to the cache snapshot when the
store is unavailable, and persists every mutation to the store before
refreshing the in-memory snapshot and the cache.
"""
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings
from django.db import connections
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from . import engine
from .exceptions import (
    ConfirmationRequiredError, DuplicatePaymentError, RecordNotFoundError,
    StoreError, StoreTimeoutError,
)
from .records import ApartmentRecord, PaymentRecord, to_decimal
from .snapshots import SnapshotCache
from .store import RecordStore

logger = logging.getLogger(__name__)

SOURCE_STORE = 'store'
SOURCE_CACHE = 'cache'

_UNSET = object()


@dataclass
class Snapshot:
    """In-memory copy of both tables plus where it came from."""
    apartments: List[ApartmentRecord] = field(default_factory=list)
    payments: List[PaymentRecord] = field(default_factory=list)
    source: str = SOURCE_STORE
    warning: Optional[str] = None

    def apartment(self, apartment_id):
        for apartment in self.apartments:
            if apartment.id == apartment_id:
                return apartment
        raise RecordNotFoundError('Daire bulunamadı.')

    def payment(self, payment_id):
        for payment in self.payments:
            if payment.id == payment_id:
                return payment
        raise RecordNotFoundError('Aidat kaydı bulunamadı.')

    def payments_for(self, apartment_id):
        return [p for p in self.payments if p.apartment_id == apartment_id]

    def apartments_by_id(self):
        return {a.id: a for a in self.apartments}

    def sort(self):
        self.apartments.sort(key=lambda a: a.apartment_number)
        self.payments.sort(key=lambda p: p.month, reverse=True)


def _close_connections_after(fetch):
    def run():
        try:
            return fetch()
        finally:
            # Worker threads get their own DB connections.
            connections.close_all()
    return run


class DuesService:

    def __init__(self, store=None, cache=None, session=None, timeout=_UNSET):
        self.store = store if store is not None else RecordStore()
        self.cache = cache if cache is not None else SnapshotCache()
        self.session = session
        self.timeout = settings.DUES_LOAD_TIMEOUT if timeout is _UNSET else timeout
        self._snapshot = None

    # ─── Loading ──────────────────────────────────────────────────

    @property
    def snapshot(self) -> Snapshot:
        if self._snapshot is None:
            self.load()
        return self._snapshot

    def _fetch_apartments(self):
        return self.store.select('apartments', order_by=['apartment_number'])

    def _fetch_payments(self):
        return self.store.select('payments', order_by=['-month'])

    def _fetch_all(self):
        if self.timeout is None:
            return self._fetch_apartments(), self._fetch_payments()

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='dues-load')
        try:
            apartments = executor.submit(_close_connections_after(self._fetch_apartments))
            payments = executor.submit(_close_connections_after(self._fetch_payments))
            done, not_done = wait([apartments, payments], timeout=self.timeout,
                                  return_when=FIRST_EXCEPTION)
            for future in done:
                if future.exception() is not None:
                    raise future.exception()
            if not_done:
                raise StoreTimeoutError()
            return apartments.result(), payments.result()
        finally:
            # Never wait on a worker that outlived the timeout.
            executor.shutdown(wait=False)

    def load(self) -> Snapshot:
        """Fetch both tables, or fall back to the cached snapshot."""
        try:
            apartment_rows, payment_rows = self._fetch_all()
        except StoreError as exc:
            return self._fall_back(exc)

        apartments = [ApartmentRecord.from_row(row) for row in apartment_rows]
        payments = [PaymentRecord.from_row(row) for row in payment_rows]
        for payment in payments:
            problems = engine.consistency_errors(payment)
            if problems:
                logger.warning('Payment #%s is inconsistent: %s', payment.id, ', '.join(problems))

        self._snapshot = Snapshot(apartments=apartments, payments=payments, source=SOURCE_STORE)
        self.cache.save(apartments, payments)
        logger.debug('Loaded %d apartments and %d payments from the store',
                     len(apartments), len(payments))
        return self._snapshot

    def _fall_back(self, exc):
        warning = str(exc.detail)
        logger.warning('Store load failed (%s), using local cache: %s', exc.kind, warning)
        self._snapshot = Snapshot(
            apartments=self.cache.load_apartments() or [],
            payments=self.cache.load_payments() or [],
            source=SOURCE_CACHE,
            warning=warning,
        )
        return self._snapshot

    def reload(self) -> Snapshot:
        self._snapshot = None
        return self.load()

    def _persist(self):
        self.snapshot.sort()
        self.cache.save(self.snapshot.apartments, self.snapshot.payments)

    def _require_admin(self):
        if self.session is None or not self.session.is_admin:
            raise PermissionDenied('Bu işlem için yönetici girişi gerekiyor.')

    @staticmethod
    def _today():
        return timezone.localdate()

    # ─── Apartments ───────────────────────────────────────────────

    def create_apartment(self, **fields) -> ApartmentRecord:
        self._require_admin()
        fields.setdefault('monthly_fee', to_decimal(settings.DUES_DEFAULT_MONTHLY_FEE))
        record = ApartmentRecord(id=None, **fields)
        snapshot = self.snapshot
        stored = ApartmentRecord.from_row(
            self.store.insert('apartments', record.to_row(include_meta=False)))
        snapshot.apartments.append(stored)
        self._persist()
        logger.info('Apartment %s created', stored.apartment_number)
        return stored

    def update_apartment(self, apartment_id, **changes) -> ApartmentRecord:
        self._require_admin()
        self.snapshot.apartment(apartment_id)
        stored = ApartmentRecord.from_row(self.store.update('apartments', apartment_id, changes))
        self.snapshot.apartments = [
            stored if a.id == apartment_id else a for a in self.snapshot.apartments
        ]
        self._persist()
        return stored

    def delete_apartment(self, apartment_id, confirm=False):
        """
        Delete an apartment and every payment it owns, one store call each.
        A failure part way leaves the already deleted payments deleted.
        """
        self._require_admin()
        if not confirm:
            raise ConfirmationRequiredError()
        apartment = self.snapshot.apartment(apartment_id)

        removed = 0
        try:
            for payment in self.snapshot.payments_for(apartment_id):
                self.store.delete('payments', payment.id)
                self.snapshot.payments = [p for p in self.snapshot.payments if p.id != payment.id]
                removed += 1
            self.store.delete('apartments', apartment_id)
            self.snapshot.apartments = [a for a in self.snapshot.apartments if a.id != apartment_id]
        finally:
            self._persist()
        logger.info('Apartment %s deleted with %d payments', apartment.apartment_number, removed)
        return removed

    # ─── Payments ─────────────────────────────────────────────────

    def create_payment(self, apartment_id, month, amount, due_date,
                       payment_method='', notes='') -> PaymentRecord:
        self._require_admin()
        self.snapshot.apartment(apartment_id)
        engine.parse_month(month)
        if engine.find_payment(self.snapshot.payments, apartment_id, month):
            raise DuplicatePaymentError()
        record = PaymentRecord(id=None, apartment_id=apartment_id, month=month,
                               amount=to_decimal(amount), due_date=due_date,
                               payment_method=payment_method, notes=notes)
        stored = self._insert_payment(record)
        self._persist()
        return stored

    def _insert_payment(self, record):
        stored = PaymentRecord.from_row(
            self.store.insert('payments', record.to_row(include_meta=False)))
        self.snapshot.payments.append(stored)
        return stored

    def _save_payment(self, record):
        stored = PaymentRecord.from_row(
            self.store.update('payments', record.id, record.to_row(include_meta=False)))
        self.snapshot.payments = [
            stored if p.id == stored.id else p for p in self.snapshot.payments
        ]
        return stored

    def update_payment(self, payment_id, amount=None, due_date=None, status=None,
                       paid_amount=None, payment_method=None, notes=None) -> PaymentRecord:
        self._require_admin()
        current = self.snapshot.payment(payment_id)
        edited = engine.edit_payment(current, amount=amount, due_date=due_date, status=status,
                                     paid_amount=paid_amount, today=self._today())
        extra = {}
        if payment_method is not None:
            extra['payment_method'] = payment_method
        if notes is not None:
            extra['notes'] = notes
        stored = self._save_payment(edited.with_changes(**extra))
        self._persist()
        return stored

    def delete_payment(self, payment_id, confirm=False):
        self._require_admin()
        if not confirm:
            raise ConfirmationRequiredError()
        self.snapshot.payment(payment_id)
        self.store.delete('payments', payment_id)
        self.snapshot.payments = [p for p in self.snapshot.payments if p.id != payment_id]
        self._persist()

    def apply_payment(self, payment_id, paid_amount) -> PaymentRecord:
        self._require_admin()
        updated = engine.apply_payment(self.snapshot.payment(payment_id), paid_amount,
                                       today=self._today())
        stored = self._save_payment(updated)
        self._persist()
        return stored

    def mark_paid(self, payment_id) -> PaymentRecord:
        self._require_admin()
        updated = engine.mark_fully_paid(self.snapshot.payment(payment_id), today=self._today())
        stored = self._save_payment(updated)
        self._persist()
        return stored

    def revert_payment(self, payment_id, confirm=False) -> PaymentRecord:
        self._require_admin()
        if not confirm:
            raise ConfirmationRequiredError()
        stored = self._save_payment(engine.revert_to_pending(self.snapshot.payment(payment_id)))
        self._persist()
        return stored

    def generate_monthly(self, month, amount, due_date):
        """
        Insert a pending record for every apartment lacking one for `month`.
        Returns the engine result with `created` replaced by the stored rows.
        """
        self._require_admin()
        plan = engine.generate_monthly_dues(self.snapshot.apartments, self.snapshot.payments,
                                            month, amount, due_date)
        created, skipped = [], plan.skipped
        try:
            for record in plan.created:
                try:
                    created.append(self._insert_payment(record))
                except DuplicatePaymentError:
                    # Inserted by someone else since our load.
                    skipped += 1
        finally:
            self._persist()
        logger.info('Generated %d dues records for %s (%d skipped)', len(created), month, skipped)
        return engine.DuesGeneration(month=month, created=created, skipped=skipped)

    # ─── Advance payments ─────────────────────────────────────────

    def plan_advance(self, apartment_id, start_month, month_count, monthly_amount,
                     total_paid) -> engine.AdvancePlan:
        apartment = self.snapshot.apartment(apartment_id)
        return engine.plan_advance_payment(
            apartment, start_month, month_count, monthly_amount, total_paid,
            self.snapshot.payments, today=self._today(),
        )

    def record_advance(self, apartment_id, start_month, month_count, monthly_amount,
                       total_paid):
        """Persist an advance payment. Returns (plan, stored records)."""
        self._require_admin()
        plan = self.plan_advance(apartment_id, start_month, month_count, monthly_amount,
                                 total_paid)
        stored = []
        try:
            for record in plan.settled_payments:
                stored.append(self._save_payment(record))
            for record in plan.new_payments:
                stored.append(self._insert_payment(record))
        finally:
            self._persist()
        logger.info('Advance payment for apartment #%s: %d months processed, '
                    '%d already paid, %d partial skipped', apartment_id, len(stored),
                    len(plan.already_paid_months), len(plan.partial_months))
        return plan, stored

    def advance_history(self):
        return engine.advance_history(self.snapshot.payments)

    # ─── Read models ──────────────────────────────────────────────

    def summary(self, month):
        return engine.summarize_month(self.snapshot.payments, month)

    def dashboard(self, month):
        return engine.dashboard(self.snapshot.apartments, self.snapshot.payments, month)

    def debts(self):
        return engine.debts_by_apartment(self.snapshot.payments)
