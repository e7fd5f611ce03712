import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('services', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ServiceOption',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('required', models.BooleanField(default=False, help_text='The customer must pick at least one item')),
                ('multi_select', models.BooleanField(default=False, help_text='More than one item may be picked')),
                ('display_order', models.PositiveIntegerField(default=0)),
                ('service', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='options', to='services.service')),
            ],
            options={
                'verbose_name': 'Service Option',
                'verbose_name_plural': 'Service Options',
                'ordering': ['service', 'display_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='ServiceOptionItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100)),
                ('price', models.DecimalField(decimal_places=2, default=0, max_digits=8, validators=[django.core.validators.MinValueValidator(0)])),
                ('duration_minutes', models.PositiveIntegerField(default=0, help_text='Extra minutes on top of the service')),
                ('display_order', models.PositiveIntegerField(default=0)),
                ('option', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='services.serviceoption')),
            ],
            options={
                'verbose_name': 'Option Item',
                'verbose_name_plural': 'Option Items',
                'ordering': ['option', 'display_order', 'name'],
            },
        ),
    ]
