"""
Aidat — REST API Serializers

Request validation for every endpoint, plus the response shapes of the
in-memory records and engine results. Records are plain dataclasses, so
these are Serializer (not ModelSerializer) classes reading attributes.
"""
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone
from rest_framework import serializers

from . import engine
from .messaging import TEMPLATE_CUSTOM, TEMPLATES
from .models import month_validator
from .records import STATUSES
from .reports import (
    SORT_APARTMENT, SORT_FIELDS, STATUS_ALL, STATUS_FILTERS, STATUS_LABELS, ReportQuery,
)
from .session import check_admin_password

CENT = Decimal('0.01')


def derive_advance_amounts(month_count, monthly_amount=None, total_paid=None):
    """
    Fill in whichever of monthly amount / total paid is missing.

    Given the monthly amount, the total is monthly * count. Given the
    total, the monthly amount is total / count rounded to cents. Given both,
    they are returned untouched and the engine checks that they agree.
    """
    if monthly_amount is None and total_paid is None:
        raise ValueError('Aylık tutar veya toplam ödenen tutar girilmelidir.')
    if month_count < 1:
        raise ValueError('Ay sayısı en az 1 olmalıdır.')
    if total_paid is None:
        total_paid = (monthly_amount * month_count).quantize(CENT, rounding=ROUND_HALF_UP)
    elif monthly_amount is None:
        monthly_amount = (total_paid / month_count).quantize(CENT, rounding=ROUND_HALF_UP)
    return monthly_amount, total_paid


def default_month():
    return engine.month_key(timezone.localdate())


# ═══════════════════════════════════════════════════════════
#  AUTH
# ═══════════════════════════════════════════════════════════

class LoginSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_password(self, value):
        if not check_admin_password(value):
            raise serializers.ValidationError('Hatalı şifre!')
        return value


class SessionSerializer(serializers.Serializer):
    subject = serializers.CharField()
    role = serializers.CharField()
    is_admin = serializers.BooleanField()
    issued_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()


# ═══════════════════════════════════════════════════════════
#  APARTMENTS
# ═══════════════════════════════════════════════════════════

class ApartmentSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    apartment_number = serializers.CharField(max_length=20)
    owner_name = serializers.CharField(max_length=200)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    floor = serializers.IntegerField(required=False, default=1)
    apartment_size = serializers.DecimalField(max_digits=8, decimal_places=2,
                                              required=False, allow_null=True, default=None)
    monthly_fee = serializers.DecimalField(max_digits=12, decimal_places=2,
                                           min_value=Decimal('0'), required=False)
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)


# ═══════════════════════════════════════════════════════════
#  PAYMENTS
# ═══════════════════════════════════════════════════════════

class PaymentSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    apartment_id = serializers.IntegerField()
    month = serializers.CharField(max_length=7, validators=[month_validator])
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=CENT)
    due_date = serializers.DateField()
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    remaining = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    status = serializers.CharField(read_only=True)
    status_label = serializers.SerializerMethodField()
    paid_date = serializers.DateField(read_only=True)
    payment_method = serializers.CharField(max_length=30, required=False, allow_blank=True,
                                           default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    is_advance_payment = serializers.BooleanField(read_only=True)
    advance_months = serializers.ListField(child=serializers.CharField(), read_only=True)
    is_overdue = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)

    def get_status_label(self, obj):
        return STATUS_LABELS.get(obj.status, obj.status)

    def get_is_overdue(self, obj):
        return not obj.is_paid and engine.is_overdue(obj.due_date, timezone.localdate())


class PaymentUpdateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=CENT,
                                      required=False)
    due_date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=STATUSES, required=False)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    payment_method = serializers.CharField(max_length=30, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class PaymentFilterSerializer(serializers.Serializer):
    month = serializers.CharField(required=False, validators=[month_validator])
    apartment_id = serializers.IntegerField(required=False)


class GenerateDuesSerializer(serializers.Serializer):
    month = serializers.CharField(max_length=7, validators=[month_validator])
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=CENT)
    due_date = serializers.DateField(required=False)

    def validate(self, data):
        data.setdefault('due_date', engine.first_day(data['month']))
        return data


class ApplyPaymentSerializer(serializers.Serializer):
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class ConfirmSerializer(serializers.Serializer):
    confirm = serializers.BooleanField(default=False)


# ═══════════════════════════════════════════════════════════
#  ADVANCE PAYMENTS
# ═══════════════════════════════════════════════════════════

class AdvancePaymentSerializer(serializers.Serializer):
    apartment_id = serializers.IntegerField()
    start_month = serializers.CharField(max_length=7, validators=[month_validator])
    month_count = serializers.IntegerField(min_value=engine.MIN_ADVANCE_MONTHS,
                                           max_value=engine.MAX_ADVANCE_MONTHS)
    monthly_amount = serializers.DecimalField(max_digits=12, decimal_places=2,
                                              required=False, allow_null=True)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2,
                                          required=False, allow_null=True)

    def validate(self, data):
        try:
            monthly, total = derive_advance_amounts(
                data['month_count'], data.get('monthly_amount'), data.get('total_paid'))
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))
        data['monthly_amount'] = monthly
        data['total_paid'] = total
        return data


class AdvancePlanSerializer(serializers.Serializer):
    apartment_id = serializers.IntegerField()
    months = serializers.ListField(child=serializers.CharField())
    monthly_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=12, decimal_places=2)
    expected_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    new_months = serializers.SerializerMethodField()
    settled_months = serializers.SerializerMethodField()
    already_paid_months = serializers.ListField(child=serializers.CharField())
    partial_months = serializers.ListField(child=serializers.CharField())
    process_count = serializers.IntegerField()

    def get_new_months(self, obj):
        return [p.month for p in obj.new_payments]

    def get_settled_months(self, obj):
        return [p.month for p in obj.settled_payments]


class AdvanceBatchSerializer(serializers.Serializer):
    apartment_id = serializers.IntegerField()
    paid_date = serializers.DateField()
    months = serializers.ListField(child=serializers.CharField())
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)


# ═══════════════════════════════════════════════════════════
#  SUMMARY / DASHBOARD
# ═══════════════════════════════════════════════════════════

class MonthQuerySerializer(serializers.Serializer):
    month = serializers.CharField(required=False, validators=[month_validator])

    def validate(self, data):
        data.setdefault('month', default_month())
        return data


class MonthlySummarySerializer(serializers.Serializer):
    month = serializers.CharField()
    total_due = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_collected = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    collection_rate = serializers.FloatField()
    paid_count = serializers.IntegerField()
    unpaid_count = serializers.IntegerField()
    partial_count = serializers.IntegerField()
    pending_count = serializers.IntegerField()


class DashboardSerializer(serializers.Serializer):
    apartment_count = serializers.IntegerField()
    summary = MonthlySummarySerializer()
    recent_payments = PaymentSerializer(many=True)
    upcoming_dues = PaymentSerializer(many=True)
    advance_payment_count = serializers.IntegerField()


# ═══════════════════════════════════════════════════════════
#  REPORTS
# ═══════════════════════════════════════════════════════════

class ReportQuerySerializer(serializers.Serializer):
    period = serializers.RegexField(r'^\d{4}(-(0[1-9]|1[0-2]))?$', required=False,
                                    allow_blank=True, default='')
    search = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.ChoiceField(choices=STATUS_FILTERS, required=False,
                                     default=STATUS_ALL)
    sort = serializers.ChoiceField(choices=SORT_FIELDS, required=False,
                                   default=SORT_APARTMENT)
    order = serializers.ChoiceField(choices=('asc', 'desc'), required=False, default='asc')

    def to_query(self):
        data = self.validated_data
        return ReportQuery(period=data['period'], search=data['search'],
                           status=data['status'], sort=data['sort'],
                           descending=data['order'] == 'desc')


class ReportRowSerializer(serializers.Serializer):
    apartment_number = serializers.CharField()
    owner_name = serializers.CharField()
    status_label = serializers.CharField()
    payment = PaymentSerializer()


class ReportTotalsSerializer(serializers.Serializer):
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_collected = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    collection_rate = serializers.FloatField()


# ═══════════════════════════════════════════════════════════
#  MESSAGES
# ═══════════════════════════════════════════════════════════

class DebtorSerializer(serializers.Serializer):
    apartment = ApartmentSerializer()
    total_debt = serializers.DecimalField(max_digits=14, decimal_places=2)
    months = serializers.ListField(child=serializers.CharField())
    month_labels = serializers.ListField(child=serializers.CharField())


class MessageDraftSerializer(serializers.Serializer):
    apartment_id = serializers.IntegerField()
    template = serializers.ChoiceField(choices=TEMPLATES)
    custom_text = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        if data['template'] == TEMPLATE_CUSTOM and not data['custom_text'].strip():
            raise serializers.ValidationError({'custom_text': 'Özel mesaj metni boş olamaz.'})
        return data


class DraftMessageSerializer(serializers.Serializer):
    apartment = ApartmentSerializer()
    template = serializers.CharField()
    text = serializers.CharField()
    phone = serializers.CharField()
    link = serializers.CharField()
