"""
Aidat — Data Models
The two tables of the dues store.

Model hierarchy:
  Apartment (roster entry)
  └── Payment (one dues record per apartment per month)
"""

from decimal import Decimal
from django.db import models
from django.core.validators import MinValueValidator, RegexValidator

month_validator = RegexValidator(r'^\d{4}-(0[1-9]|1[0-2])$', 'Format: YYYY-MM')


# ═══════════════════════════════════════════════════════════
#  APARTMENT
# ═══════════════════════════════════════════════════════════

class Apartment(models.Model):
    """
    An apartment in the building roster.
    apartment_number is a display label ("3", "3A", "B-12"), not a number.
    """
    apartment_number = models.CharField(max_length=20, db_index=True)
    owner_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=30, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    floor = models.IntegerField(default=1)
    apartment_size = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    monthly_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('500'),
                                      validators=[MinValueValidator(0)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'apartments'
        ordering = ['apartment_number']

    def __str__(self):
        return f'Daire {self.apartment_number} — {self.owner_name}'


# ═══════════════════════════════════════════════════════════
#  PAYMENT (Monthly dues record per apartment)
# ═══════════════════════════════════════════════════════════

class Payment(models.Model):
    """
    A monthly dues record for an apartment.
    status: pending (nothing paid), partial, paid.
    """
    STATUS_PENDING = 'pending'
    STATUS_PARTIAL = 'partial'
    STATUS_PAID = 'paid'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Bekliyor'),
        (STATUS_PARTIAL, 'Kısmi'),
        (STATUS_PAID, 'Ödendi'),
    ]

    apartment = models.ForeignKey(Apartment, on_delete=models.CASCADE, related_name='payments')
    month = models.CharField(max_length=7, db_index=True, validators=[month_validator],
                             help_text='Format: YYYY-MM')
    amount = models.DecimalField(max_digits=12, decimal_places=2,
                                 validators=[MinValueValidator(0)])
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'),
                                      validators=[MinValueValidator(0)])
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    due_date = models.DateField()
    paid_date = models.DateField(null=True, blank=True)
    payment_method = models.CharField(max_length=30, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    # Advance payment batches: every record of a batch carries the full month list
    is_advance_payment = models.BooleanField(default=False)
    advance_months = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'payments'
        ordering = ['-month', 'apartment__apartment_number']
        constraints = [
            models.UniqueConstraint(fields=['apartment', 'month'],
                                    name='uq_payment_apartment_month'),
        ]
        indexes = [
            models.Index(fields=['month', 'status'], name='payments_month_status_idx'),
        ]

    def __str__(self):
        return f'{self.apartment_id} — {self.month} ({self.status})'
