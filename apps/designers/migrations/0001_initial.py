import datetime
import uuid

import django.db.models.deletion
from django.db import migrations, models

import apps.designers.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='BookingSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_deadline', models.DateTimeField(blank=True, help_text='No slot may start after this instant (unless a designer sets their own).', null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Booking Settings',
                'verbose_name_plural': 'Booking Settings',
            },
        ),
        migrations.CreateModel(
            name='Designer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=120)),
                ('title', models.CharField(blank=True, help_text='e.g. Senior Designer, Store Manager', max_length=80)),
                ('bio', models.TextField(blank=True)),
                ('linked_user_id', models.CharField(blank=True, help_text='Identity-provider id of the staff account linked to this designer', max_length=128)),
                ('opening_time', models.TimeField(default=datetime.time(10, 0))),
                ('closing_time', models.TimeField(default=datetime.time(19, 0))),
                ('booking_deadline', models.DateTimeField(blank=True, help_text='No slot may start after this instant. Overrides the store-wide deadline.', null=True)),
                ('is_active', models.BooleanField(db_index=True, default=True)),
                ('display_order', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Designer',
                'verbose_name_plural': 'Designers',
                'ordering': ['display_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='BusinessHours',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('date', models.DateField(db_index=True)),
                ('is_closed', models.BooleanField(default=False)),
                ('time_slots', models.JSONField(blank=True, default=list, help_text='e.g. [{"start": "10:00", "end": "13:00"}, {"start": "14:00", "end": "20:00"}]', validators=[apps.designers.models.validate_time_slots])),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('designer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='business_hours', to='designers.designer')),
            ],
            options={
                'verbose_name': 'Business Hours',
                'verbose_name_plural': 'Business Hours',
                'ordering': ['designer', 'date'],
                'unique_together': {('designer', 'date')},
            },
        ),
    ]
