"""
Record store client.

Generic table operations (select / insert / update / delete) over the two
dues tables. Rows go in and come out as plain dicts keyed by column name;
callers never see model instances. Every failure is classified into the
store error taxonomy before it leaves this module.
"""
import logging
from contextlib import contextmanager

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import APIException

from .exceptions import (
    DuplicatePaymentError, RecordNotFoundError, StoreConfigurationError,
    StoreConnectionError, StoreError, StoreSchemaError, StoreTimeoutError,
)
from .models import Apartment, Payment

logger = logging.getLogger(__name__)

TABLES = {
    'apartments': Apartment,
    'payments': Payment,
}

_SCHEMA_PATTERNS = ('no such table', 'undefined table')
_CONFIG_PATTERNS = ('password authentication failed', 'invalid api key', 'jwt',
                    'authentication failed', 'permission denied')
_TIMEOUT_PATTERNS = ('timeout', 'timed out')
_CONNECTION_PATTERNS = ('could not connect', 'connection refused', 'failed to fetch',
                        'networkerror', 'network', 'server closed the connection',
                        'could not translate host name', 'unable to open database')


def classify_store_error(exc):
    """Map a raw store exception onto the store error taxonomy by message."""
    if isinstance(exc, StoreError):
        return exc
    message = str(exc).lower()

    if ('relation' in message and 'does not exist' in message) or \
            any(p in message for p in _SCHEMA_PATTERNS):
        return StoreSchemaError()
    if any(p in message for p in _CONFIG_PATTERNS):
        return StoreConfigurationError()
    if isinstance(exc, TimeoutError) or any(p in message for p in _TIMEOUT_PATTERNS):
        return StoreTimeoutError()
    if isinstance(exc, ConnectionError) or any(p in message for p in _CONNECTION_PATTERNS):
        return StoreConnectionError()
    return StoreError()


@contextmanager
def store_errors(operation):
    try:
        yield
    except APIException:
        raise
    except IntegrityError as exc:
        if 'unique' in str(exc).lower():
            logger.warning('Store %s rejected a duplicate row: %s', operation, exc)
            raise DuplicatePaymentError() from exc
        error = classify_store_error(exc)
        logger.error('Store %s failed (%s): %s', operation, error.kind, exc)
        raise error from exc
    except (DatabaseError, OSError) as exc:
        error = classify_store_error(exc)
        logger.error('Store %s failed (%s): %s', operation, error.kind, exc)
        raise error from exc


class RecordStore:
    """
    Table operations against the relational store.

    `using` selects the Django database alias, so the same client can point
    at the hosted database or a local one.
    """

    def __init__(self, using='default'):
        self.using = using

    def _manager(self, table):
        try:
            model = TABLES[table]
        except KeyError:
            raise StoreSchemaError(f'Bilinmeyen tablo: {table}')
        return model.objects.using(self.using)

    def select(self, table, order_by=None):
        """List every row of a table, optionally ordered."""
        manager = self._manager(table)
        with store_errors(f'select {table}'):
            qs = manager.all()
            if order_by:
                qs = qs.order_by(*order_by)
            return list(qs.values())

    def insert(self, table, row):
        """Insert one row and return it as stored (with id and timestamps)."""
        manager = self._manager(table)
        row = {k: v for k, v in row.items() if k not in ('id', 'created_at', 'updated_at')}
        with store_errors(f'insert {table}'):
            with transaction.atomic(using=self.using):
                obj = manager.create(**row)
            return manager.filter(pk=obj.pk).values().get()

    def update(self, table, pk, fields):
        """Apply a partial field set to one row and return the stored row."""
        manager = self._manager(table)
        fields = {k: v for k, v in fields.items() if k not in ('id', 'created_at')}
        fields['updated_at'] = timezone.now()
        with store_errors(f'update {table}'):
            with transaction.atomic(using=self.using):
                updated = manager.filter(pk=pk).update(**fields)
            if not updated:
                raise RecordNotFoundError(f'{table} #{pk} bulunamadı.')
            return manager.filter(pk=pk).values().get()

    def delete(self, table, pk):
        """Delete one row by id. Returns False when nothing matched."""
        manager = self._manager(table)
        with store_errors(f'delete {table}'):
            deleted, _ = manager.filter(pk=pk).delete()
            return deleted > 0

