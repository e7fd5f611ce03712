import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


STATUS_CHOICES = [
    ('pending_payment', 'Pending Payment'),
    ('pending_confirmation', 'Pending Confirmation'),
    ('confirmed', 'Confirmed'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('designers', '0001_initial'),
        ('passes', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer_id', models.CharField(db_index=True, max_length=128)),
                ('contact_email', models.EmailField(blank=True, max_length=254)),
                ('service_ids', models.JSONField(default=list)),
                ('service_names', models.JSONField(blank=True, default=list)),
                ('start_time', models.DateTimeField(db_index=True)),
                ('duration_minutes', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('amount', models.DecimalField(decimal_places=2, default=0, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('status', models.CharField(choices=STATUS_CHOICES, db_index=True, default='pending_payment', max_length=24)),
                ('notes', models.TextField(blank=True)),
                ('reschedule_count', models.PositiveSmallIntegerField(default=0)),
                ('feedback', models.TextField(blank=True)),
                ('pass_service_ids', models.JSONField(blank=True, default=list)),
                ('pass_usage_deducted', models.BooleanField(default=False)),
                ('refund_pending', models.BooleanField(db_index=True, default=False)),
                ('request_key', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('active_pass', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bookings', to='passes.activepass')),
                ('designer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='bookings', to='designers.designer')),
            ],
            options={
                'verbose_name': 'Booking',
                'verbose_name_plural': 'Bookings',
                'ordering': ['-start_time'],
                'indexes': [models.Index(fields=['designer', 'start_time'], name='booking_designer_start_idx')],
            },
        ),
        migrations.CreateModel(
            name='BookingStatusLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('from_status', models.CharField(blank=True, choices=STATUS_CHOICES, max_length=24)),
                ('to_status', models.CharField(choices=STATUS_CHOICES, max_length=24)),
                ('changed_by', models.CharField(help_text='role:requester-id or system', max_length=160)),
                ('reason', models.TextField(blank=True)),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('booking', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='status_logs', to='bookings.booking')),
            ],
            options={
                'verbose_name': 'Booking Status Log',
                'verbose_name_plural': 'Booking Status Logs',
                'ordering': ['changed_at'],
            },
        ),
    ]
