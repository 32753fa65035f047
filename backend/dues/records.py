"""
Aidat — In-memory records

One canonical shape per entity. The store hands back row dicts and the
local cache holds JSON rows; both are mapped here and nowhere else.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

PENDING = 'pending'
PARTIAL = 'partial'
PAID = 'paid'
STATUSES = (PENDING, PARTIAL, PAID)


def to_decimal(value) -> Decimal:
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_date(value) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def to_datetime(value) -> Optional[datetime]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class ApartmentRecord:
    id: Optional[int]
    apartment_number: str
    owner_name: str
    phone: str = ''
    email: str = ''
    floor: int = 1
    apartment_size: Optional[Decimal] = None
    monthly_fee: Decimal = Decimal('500')
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ApartmentRecord':
        size = row.get('apartment_size')
        return cls(
            id=row.get('id'),
            apartment_number=str(row.get('apartment_number') or ''),
            owner_name=row.get('owner_name') or '',
            phone=row.get('phone') or '',
            email=row.get('email') or '',
            floor=int(row.get('floor') or 1),
            apartment_size=to_decimal(size) if size not in (None, '') else None,
            monthly_fee=to_decimal(row.get('monthly_fee', '500')),
            created_at=to_datetime(row.get('created_at')),
            updated_at=to_datetime(row.get('updated_at')),
        )

    def to_row(self, include_meta: bool = True) -> Dict[str, Any]:
        """Row for the store, with native types. The cache uses to_json."""
        row = {
            'apartment_number': self.apartment_number,
            'owner_name': self.owner_name,
            'phone': self.phone,
            'email': self.email,
            'floor': self.floor,
            'apartment_size': self.apartment_size,
            'monthly_fee': self.monthly_fee,
        }
        if include_meta:
            row.update(id=self.id, created_at=self.created_at, updated_at=self.updated_at)
        return row

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'apartment_number': self.apartment_number,
            'owner_name': self.owner_name,
            'phone': self.phone,
            'email': self.email,
            'floor': self.floor,
            'apartment_size': str(self.apartment_size) if self.apartment_size is not None else None,
            'monthly_fee': str(self.monthly_fee),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


@dataclass(frozen=True)
class PaymentRecord:
    id: Optional[int]
    apartment_id: int
    month: str
    amount: Decimal
    due_date: date
    paid_amount: Decimal = Decimal('0')
    status: str = PENDING
    paid_date: Optional[date] = None
    payment_method: str = ''
    notes: str = ''
    is_advance_payment: bool = False
    advance_months: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.paid_amount

    @property
    def is_paid(self) -> bool:
        return self.status == PAID

    @property
    def is_unpaid(self) -> bool:
        return self.status in (PENDING, PARTIAL)

    def with_changes(self, **changes) -> 'PaymentRecord':
        return replace(self, **changes)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'PaymentRecord':
        return cls(
            id=row.get('id'),
            apartment_id=int(row['apartment_id']),
            month=row['month'],
            amount=to_decimal(row.get('amount')),
            due_date=to_date(row.get('due_date')),
            paid_amount=to_decimal(row.get('paid_amount')),
            status=row.get('status') or PENDING,
            paid_date=to_date(row.get('paid_date')),
            payment_method=row.get('payment_method') or '',
            notes=row.get('notes') or '',
            is_advance_payment=bool(row.get('is_advance_payment')),
            advance_months=list(row.get('advance_months') or []),
            created_at=to_datetime(row.get('created_at')),
            updated_at=to_datetime(row.get('updated_at')),
        )

    def to_row(self, include_meta: bool = True) -> Dict[str, Any]:
        row = {
            'apartment_id': self.apartment_id,
            'month': self.month,
            'amount': self.amount,
            'paid_amount': self.paid_amount,
            'status': self.status,
            'due_date': self.due_date,
            'paid_date': self.paid_date,
            'payment_method': self.payment_method,
            'notes': self.notes,
            'is_advance_payment': self.is_advance_payment,
            'advance_months': list(self.advance_months),
        }
        if include_meta:
            row.update(id=self.id, created_at=self.created_at, updated_at=self.updated_at)
        return row

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'apartment_id': self.apartment_id,
            'month': self.month,
            'amount': str(self.amount),
            'paid_amount': str(self.paid_amount),
            'status': self.status,
            'due_date': _iso(self.due_date),
            'paid_date': _iso(self.paid_date),
            'payment_method': self.payment_method,
            'notes': self.notes,
            'is_advance_payment': self.is_advance_payment,
            'advance_months': list(self.advance_months),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
