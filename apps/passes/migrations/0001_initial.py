import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import apps.passes.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('services', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SeasonPass',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=120)),
                ('duration_months', models.PositiveSmallIntegerField(default=3, validators=[django.core.validators.MinValueValidator(1)])),
                ('variants', models.JSONField(blank=True, default=list, help_text='e.g. [{"name": "120", "price": 12000, "original_price": 15000}]')),
                ('note', models.TextField(blank=True)),
                ('color', models.CharField(blank=True, max_length=20)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('display_order', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Season Pass',
                'verbose_name_plural': 'Season Passes',
                'ordering': ['display_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='ContentItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=120)),
                ('category', models.CharField(choices=[('service', 'Service'), ('benefit', 'Benefit')], default='service', max_length=10)),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('monthly_limit', models.PositiveIntegerField(blank=True, help_text='Maximum redemptions per calendar month; empty means no cap', null=True)),
                ('season_pass', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='content_items', to='passes.seasonpass')),
                ('service', models.ForeignKey(blank=True, help_text='Service this item redeems, if any', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pass_content_items', to='services.service')),
            ],
            options={
                'verbose_name': 'Content Item',
                'verbose_name_plural': 'Content Items',
                'ordering': ['season_pass', 'name'],
            },
        ),
        migrations.CreateModel(
            name='SeasonPassOrder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer_id', models.CharField(db_index=True, max_length=128)),
                ('pass_name', models.CharField(max_length=120)),
                ('variant_name', models.CharField(blank=True, max_length=60)),
                ('price', models.DecimalField(decimal_places=2, default=0, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('status', models.CharField(choices=[('pending_payment', 'Pending Payment'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='pending_payment', max_length=20)),
                ('payment_note', models.CharField(blank=True, max_length=120)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('season_pass', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to='passes.seasonpass')),
            ],
            options={
                'verbose_name': 'Season Pass Order',
                'verbose_name_plural': 'Season Pass Orders',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ActivePass',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer_id', models.CharField(db_index=True, max_length=128)),
                ('pass_name', models.CharField(max_length=120)),
                ('variant_name', models.CharField(blank=True, max_length=60)),
                ('purchase_date', models.DateTimeField()),
                ('expiry_date', models.DateTimeField(db_index=True)),
                ('remaining_usages', models.JSONField(blank=True, default=dict, validators=[apps.passes.models.validate_remaining_usages])),
                ('order', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='active_pass', to='passes.seasonpassorder')),
                ('season_pass', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='active_passes', to='passes.seasonpass')),
            ],
            options={
                'verbose_name': 'Active Pass',
                'verbose_name_plural': 'Active Passes',
                'ordering': ['-purchase_date'],
            },
        ),
        migrations.CreateModel(
            name='PassMonthlyUsage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('content_item_id', models.CharField(max_length=36)),
                ('month', models.CharField(help_text='YYYY-MM', max_length=7)),
                ('used', models.PositiveIntegerField(default=0)),
                ('active_pass', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_usage', to='passes.activepass')),
            ],
            options={
                'verbose_name': 'Monthly Usage',
                'verbose_name_plural': 'Monthly Usage',
                'constraints': [models.UniqueConstraint(fields=('active_pass', 'content_item_id', 'month'), name='uq_pass_item_month_usage')],
            },
        ),
        migrations.CreateModel(
            name='PassConsumption',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('content_item_id', models.CharField(max_length=36)),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('month', models.CharField(max_length=7)),
                ('booking_id', models.UUIDField(blank=True, db_index=True, null=True)),
                ('refunded_at', models.DateTimeField(blank=True, null=True)),
                ('active_pass', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='consumptions', to='passes.activepass')),
            ],
            options={
                'verbose_name': 'Pass Consumption',
                'verbose_name_plural': 'Pass Consumptions',
                'ordering': ['-created_at'],
            },
        ),
    ]
