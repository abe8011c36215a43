# Generated migration for location_zones app

from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django_countries.fields


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LocationZone',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('zone_name', models.CharField(max_length=100)),
                ('city', models.CharField(max_length=100)),
                ('state', models.CharField(max_length=100)),
                ('country', django_countries.fields.CountryField(default='IN', max_length=2)),
                ('service_radius_km', models.PositiveSmallIntegerField(default=10, help_text='Maximum delivery distance from the zone centre', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(50)])),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('service_type', models.CharField(choices=[('vendor_only', 'Food vendors only'), ('home_chef_only', 'Home chefs only'), ('both_vendor_home_chef', 'Food vendors and home chefs')], default='both_vendor_home_chef', max_length=30)),
                ('base_charge', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('per_km_charge', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=8)),
                ('free_delivery_above', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Order value at or above which delivery is free (0 disables)', max_digits=10)),
                ('operating_start', models.TimeField(blank=True, null=True)),
                ('operating_end', models.TimeField(blank=True, null=True)),
                ('restrictions', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_zones', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['city', 'zone_name'],
                'indexes': [models.Index(fields=['city', 'is_active'], name='zone_city_active_idx')],
            },
        ),
        migrations.CreateModel(
            name='ZonePincode',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('pincode', models.CharField(max_length=6, unique=True, validators=[django.core.validators.RegexValidator('^[0-9]{6}$', 'Pincode must be 6 digits')])),
                ('zone', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pincodes', to='location_zones.locationzone')),
            ],
            options={
                'ordering': ['pincode'],
            },
        ),
    ]
