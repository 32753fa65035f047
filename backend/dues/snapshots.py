"""
Local snapshot cache.

Holds the last-known-good apartments and payments as JSON strings under two
keys of a Django cache alias. Written after every successful load or
mutation, read only when the record store cannot be reached.
"""
import json
import logging

from django.conf import settings
from django.core.cache import caches

from .records import ApartmentRecord, PaymentRecord

logger = logging.getLogger(__name__)

APARTMENTS_KEY = 'apartments'
PAYMENTS_KEY = 'payments'


class SnapshotCache:

    def __init__(self, cache=None):
        self.cache = cache if cache is not None else caches[settings.DUES_SNAPSHOT_CACHE]

    def save_apartments(self, apartments):
        self.cache.set(APARTMENTS_KEY, json.dumps([a.to_json() for a in apartments]), None)

    def save_payments(self, payments):
        self.cache.set(PAYMENTS_KEY, json.dumps([p.to_json() for p in payments]), None)

    def save(self, apartments, payments):
        self.save_apartments(apartments)
        self.save_payments(payments)

    def load_apartments(self):
        return self._load(APARTMENTS_KEY, ApartmentRecord.from_row)

    def load_payments(self):
        return self._load(PAYMENTS_KEY, PaymentRecord.from_row)

    def has_snapshot(self):
        return self.cache.get(APARTMENTS_KEY) is not None or \
            self.cache.get(PAYMENTS_KEY) is not None

    def clear(self):
        self.cache.delete_many([APARTMENTS_KEY, PAYMENTS_KEY])

    def _load(self, key, from_row):
        """Records stored under key; None if never saved, [] if unreadable."""
        raw = self.cache.get(key)
        if raw is None:
            return None
        try:
            return [from_row(row) for row in json.loads(raw)]
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning('Discarding unreadable %s snapshot: %s', key, exc)
            return []
