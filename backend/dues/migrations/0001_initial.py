from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create the apartments and payments tables."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Apartment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name='ID')),
                ('apartment_number', models.CharField(db_index=True, max_length=20)),
                ('owner_name', models.CharField(max_length=200)),
                ('phone', models.CharField(blank=True, default='', max_length=30)),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
                ('floor', models.IntegerField(default=1)),
                ('apartment_size', models.DecimalField(blank=True, decimal_places=2,
                                                       max_digits=8, null=True)),
                ('monthly_fee', models.DecimalField(
                    decimal_places=2, default=Decimal('500'), max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'apartments',
                'ordering': ['apartment_number'],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True,
                                           serialize=False, verbose_name='ID')),
                ('month', models.CharField(
                    db_index=True, help_text='Format: YYYY-MM', max_length=7,
                    validators=[django.core.validators.RegexValidator(
                        '^\\d{4}-(0[1-9]|1[0-2])$', 'Format: YYYY-MM')])),
                ('amount', models.DecimalField(
                    decimal_places=2, max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)])),
                ('paid_amount', models.DecimalField(
                    decimal_places=2, default=Decimal('0'), max_digits=12,
                    validators=[django.core.validators.MinValueValidator(0)])),
                ('status', models.CharField(
                    choices=[('pending', 'Bekliyor'), ('partial', 'Kısmi'), ('paid', 'Ödendi')],
                    default='pending', max_length=10)),
                ('due_date', models.DateField()),
                ('paid_date', models.DateField(blank=True, null=True)),
                ('payment_method', models.CharField(blank=True, default='', max_length=30)),
                ('notes', models.TextField(blank=True, default='')),
                ('is_advance_payment', models.BooleanField(default=False)),
                ('advance_months', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('apartment', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='payments', to='dues.apartment')),
            ],
            options={
                'db_table': 'payments',
                'ordering': ['-month', 'apartment__apartment_number'],
                'indexes': [models.Index(fields=['month', 'status'],
                                         name='payments_month_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('apartment', 'month'),
                                                        name='uq_payment_apartment_month')],
            },
        ),
    ]
