"""
Aidat — Seed Demo Data
A small building roster and dues for the current month, one record of each
status, so every screen has something to show.
Usage: python manage.py seed_data [--month YYYY-MM]
"""
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from dues import engine
from dues.models import Apartment, Payment

APARTMENTS = [
    {'apartment_number': '1', 'owner_name': 'Ahmet Yılmaz', 'phone': '0532 111 22 33',
     'email': 'ahmet@example.com', 'floor': 1},
    {'apartment_number': '2', 'owner_name': 'Ayşe Demir', 'phone': '0533 222 33 44',
     'email': 'ayse@example.com', 'floor': 1},
    {'apartment_number': '3', 'owner_name': 'Mehmet Kaya', 'phone': '0534 333 44 55',
     'email': 'mehmet@example.com', 'floor': 2},
    {'apartment_number': '4', 'owner_name': 'Fatma Şahin', 'phone': '0535 444 55 66',
     'email': 'fatma@example.com', 'floor': 2},
    {'apartment_number': '5', 'owner_name': 'Ali Çelik', 'phone': '0536 555 66 77',
     'email': 'ali@example.com', 'floor': 3},
]

MONTHLY_FEE = Decimal('500.00')


class Command(BaseCommand):
    help = 'Seed database with aidat demo data'

    def add_arguments(self, parser):
        parser.add_argument('--month', help='Dues month to seed (YYYY-MM), default this month')

    def handle(self, *args, **options):
        month = options.get('month') or engine.month_key(timezone.localdate())
        try:
            due_date = engine.first_day(month).replace(day=10)
        except ValueError as exc:
            raise CommandError(str(exc))

        self.stdout.write('🌱 Seeding aidat demo data...\n')

        # ── Apartments ───────────────────────────
        apartments = []
        for data in APARTMENTS:
            apartment, created = Apartment.objects.get_or_create(
                apartment_number=data['apartment_number'],
                defaults={**data, 'monthly_fee': MONTHLY_FEE},
            )
            apartments.append(apartment)
            if created:
                self.stdout.write(self.style.SUCCESS(
                    f'  ✓ Daire {apartment.apartment_number} ({apartment.owner_name}) created'))
            else:
                self.stdout.write(f'  · Daire {apartment.apartment_number} already exists')

        # ── Dues for the month ───────────────────
        today = timezone.localdate()
        paid_sides = [
            (Payment.STATUS_PAID, MONTHLY_FEE, today),
            (Payment.STATUS_PARTIAL, Decimal('250.00'), today),
        ]
        for index, apartment in enumerate(apartments):
            status, paid_amount, paid_date = (
                paid_sides[index] if index < len(paid_sides)
                else (Payment.STATUS_PENDING, Decimal('0'), None)
            )
            _, created = Payment.objects.get_or_create(
                apartment=apartment,
                month=month,
                defaults={
                    'amount': MONTHLY_FEE,
                    'paid_amount': paid_amount,
                    'status': status,
                    'due_date': due_date,
                    'paid_date': paid_date,
                },
            )
            if created:
                self.stdout.write(self.style.SUCCESS(
                    f'  ✓ {month} dues for daire {apartment.apartment_number} ({status})'))

        self.stdout.write(self.style.SUCCESS('\n✅ Seed complete.'))
