"""
Domain exceptions for the dues app.

Store and conflict errors are DRF APIExceptions so they surface as HTTP
responses on their own. Engine validation errors are plain exceptions; the
views turn them into 400 responses carrying the computed discrepancy.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


# ─── Store (connectivity / configuration / schema) ─────────────────

class StoreError(APIException):
    """The record store could not complete an operation."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Veri deposu hatası.'
    default_code = 'store_error'
    kind = 'store'


class StoreConnectionError(StoreError):
    default_detail = 'İnternet bağlantısı sorunu. Lütfen bağlantınızı kontrol edin.'
    default_code = 'store_unreachable'
    kind = 'connectivity'


class StoreTimeoutError(StoreConnectionError):
    default_detail = 'Bağlantı zaman aşımı.'
    default_code = 'store_timeout'


class StoreConfigurationError(StoreError):
    default_detail = 'Veri deposu kimlik bilgileri geçersiz. Lütfen konfigürasyonu kontrol edin.'
    default_code = 'store_misconfigured'
    kind = 'configuration'


class StoreSchemaError(StoreError):
    default_detail = 'Veri deposu tabloları bulunamadı. Lütfen veritabanı kurulumunu kontrol edin.'
    default_code = 'store_schema_missing'
    kind = 'schema'


# ─── Orchestration ─────────────────────────────────────────────────

class DuplicatePaymentError(APIException):
    """A dues record already exists for the apartment and month."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Bu daire için bu ay zaten aidat kaydı bulunmaktadır!'
    default_code = 'duplicate_payment'


class RecordNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Kayıt bulunamadı.'
    default_code = 'not_found'


class ConfirmationRequiredError(APIException):
    """Destructive operation called without explicit confirmation."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Bu işlem için onay gerekiyor (confirm=true).'
    default_code = 'confirmation_required'


# ─── Dues engine validation ────────────────────────────────────────

class DuesEngineError(Exception):
    """Base exception for dues engine validation failures."""
    code = 'invalid'

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def as_payload(self):
        payload = {'detail': self.message, 'code': self.code}
        payload.update(self.extra)
        return payload


class InvalidPaymentAmount(DuesEngineError):
    code = 'invalid_amount'


class InvalidMonthCount(DuesEngineError):
    code = 'invalid_month_count'


class AdvanceAmountMismatch(DuesEngineError):
    """Total paid does not equal monthly amount times month count."""
    code = 'amount_mismatch'

    def __init__(self, message, difference, expected_total):
        super().__init__(message, difference=difference, expected_total=expected_total)
        self.difference = difference
        self.expected_total = expected_total


class NothingToProcess(DuesEngineError):
    code = 'nothing_to_process'


class EmptyReportError(DuesEngineError):
    code = 'empty_report'
