"""Record builders shared by the dues tests."""
from datetime import date
from decimal import Decimal

from dues.records import PAID, PARTIAL, PENDING, ApartmentRecord, PaymentRecord


def apartment(id=1, number=None, owner='Ahmet Yılmaz', phone='0532 111 22 33', **extra):
    return ApartmentRecord(
        id=id,
        apartment_number=number if number is not None else str(id),
        owner_name=owner,
        phone=phone,
        **extra,
    )


def payment(id=1, apartment_id=1, month='2024-01', amount='500', status=PENDING,
            paid_amount=None, paid_date=None, due_date=None, **extra):
    amount = Decimal(amount)
    if paid_amount is None:
        paid_amount = amount if status == PAID else Decimal('0')
    if paid_date is None and status in (PAID, PARTIAL):
        paid_date = date(2024, 1, 5)
    return PaymentRecord(
        id=id,
        apartment_id=apartment_id,
        month=month,
        amount=amount,
        paid_amount=Decimal(paid_amount),
        status=status,
        paid_date=paid_date,
        due_date=due_date or date(int(month[:4]), int(month[5:]), 10),
        **extra,
    )
