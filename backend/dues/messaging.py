"""
Aidat — WhatsApp messages

Debt reminders for apartments with unpaid dues: the debtor list, message
text from the reminder / warning / custom templates, and the wa.me link the
administrator opens to send it.
"""
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List
from urllib.parse import quote

from django.conf import settings

from . import engine
from .exceptions import NothingToProcess

TEMPLATE_REMINDER = 'reminder'
TEMPLATE_WARNING = 'warning'
TEMPLATE_CUSTOM = 'custom'
TEMPLATES = (TEMPLATE_REMINDER, TEMPLATE_WARNING, TEMPLATE_CUSTOM)

_PLACEHOLDER_RE = re.compile(r'\{(isim|daire|borc|aylar)\}')

MONTH_NAMES = ('Ocak', 'Şubat', 'Mart', 'Nisan', 'Mayıs', 'Haziran',
               'Temmuz', 'Ağustos', 'Eylül', 'Ekim', 'Kasım', 'Aralık')

REMINDER_TEXT = (
    'Sayın {isim},\n'
    '\n'
    'Apartman {daire} numaralı dairenizin aşağıdaki aylara ait aidat borcunuz bulunmaktadır:\n'
    '\n'
    '{aylar}\n'
    'Toplam Borç: {borc} ₺\n'
    '\n'
    'Lütfen en kısa sürede ödemelerinizi yapınız.\n'
    '\n'
    'Teşekkürler.\n'
    'Apartman Yönetimi'
)

WARNING_TEXT = (
    'Sayın {isim},\n'
    '\n'
    'Apartman {daire} numaralı dairenizin {aylar} aylarına ait {borc} ₺ aidat borcunuz '
    'bulunmaktadır.\n'
    '\n'
    'Bu mesajımızdan sonra 7 gün içerisinde ödeme yapılmaması durumunda yasal süreç '
    'başlatılacaktır.\n'
    '\n'
    'Acil ödeme yapmanızı rica ederiz.\n'
    '\n'
    'Apartman Yönetimi'
)

WA_ME_URL = 'https://wa.me/{phone}?text={text}'
# Characters encodeURIComponent leaves alone.
_URI_SAFE = "-_.!~*'()"


def format_amount(amount):
    """tr-TR number format: 1234.5 -> '1.234,5', 1500.00 -> '1.500'."""
    amount = Decimal(amount).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    whole, _, fraction = f'{abs(amount):,.2f}'.partition('.')
    text = whole.replace(',', '.')
    fraction = fraction.rstrip('0')
    if fraction:
        text = f'{text},{fraction}'
    return f'-{text}' if amount < 0 else text


def month_label(month):
    """'2024-01' -> 'Ocak 2024'."""
    year, mon = engine.parse_month(month)
    return f'{MONTH_NAMES[mon - 1]} {year}'


def normalize_phone(phone, country_code=None):
    """Digits only; a leading trunk 0 becomes the country code."""
    country_code = country_code or settings.DUES_PHONE_COUNTRY_CODE
    digits = ''.join(ch for ch in phone or '' if ch.isdigit())
    if digits.startswith('0'):
        return country_code + digits[1:]
    return digits


def whatsapp_link(phone, message):
    return WA_ME_URL.format(phone=normalize_phone(phone), text=quote(message, safe=_URI_SAFE))


@dataclass(frozen=True)
class Debtor:
    apartment: object
    total_debt: Decimal
    months: List[str]

    @property
    def month_labels(self):
        return [month_label(m) for m in self.months]


def debtors(apartments, payments):
    """Apartments with at least one pending or partial record, roster order."""
    debts = engine.debts_by_apartment(payments)
    return [
        Debtor(apartment=a, total_debt=debts[a.id].total_debt, months=debts[a.id].months)
        for a in apartments if a.id in debts
    ]


def render(template, apartment, debt, custom_text=''):
    """Fill a template. Custom text may use {isim}, {daire}, {borc}, {aylar}."""
    values = {
        'isim': apartment.owner_name,
        'daire': apartment.apartment_number,
        'borc': format_amount(debt.total_debt),
        'aylar': ', '.join(month_label(m) for m in debt.months),
    }
    if template == TEMPLATE_REMINDER:
        text = REMINDER_TEXT
    elif template == TEMPLATE_WARNING:
        text = WARNING_TEXT
    else:
        text = custom_text or ''
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], text)


@dataclass(frozen=True)
class DraftMessage:
    apartment: object
    template: str
    text: str
    phone: str
    link: str


def draft_message(apartments, payments, apartment_id, template, custom_text=''):
    apartment = next((a for a in apartments if a.id == apartment_id), None)
    debt = engine.debts_by_apartment(payments).get(apartment_id)
    if apartment is None or debt is None:
        raise NothingToProcess('Bu dairenin ödenmemiş aidatı bulunmuyor.',
                               apartment_id=apartment_id)
    text = render(template, apartment, debt, custom_text)
    return DraftMessage(
        apartment=apartment,
        template=template,
        text=text,
        phone=normalize_phone(apartment.phone),
        link=whatsapp_link(apartment.phone, text),
    )
