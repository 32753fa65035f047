from django.contrib import admin
from .models import Apartment, Payment


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ['month', 'amount', 'paid_amount', 'status', 'due_date', 'paid_date']


@admin.register(Apartment)
class ApartmentAdmin(admin.ModelAdmin):
    list_display = ['apartment_number', 'owner_name', 'phone', 'floor', 'monthly_fee']
    search_fields = ['apartment_number', 'owner_name', 'phone']
    list_filter = ['floor']
    inlines = [PaymentInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['apartment', 'month', 'amount', 'paid_amount', 'status', 'due_date',
                    'paid_date', 'is_advance_payment']
    list_filter = ['status', 'month', 'is_advance_payment']
    search_fields = ['apartment__apartment_number', 'apartment__owner_name']
