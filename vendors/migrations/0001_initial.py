# Generated migration for vendors app

from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='VendorProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vendor_type', models.CharField(choices=[('home_chef', 'Home Chef'), ('food_vendor', 'Food Vendor')], max_length=20)),
                ('business_name', models.CharField(max_length=150)),
                ('description', models.TextField(blank=True, max_length=1000)),
                ('cuisine_types', models.JSONField(blank=True, default=list)),
                ('service_radius_km', models.DecimalField(decimal_places=2, default=Decimal('5.00'), max_digits=5)),
                ('service_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('service_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('street', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(blank=True, max_length=100)),
                ('country', models.CharField(blank=True, default='India', max_length=100)),
                ('pincode', models.CharField(blank=True, max_length=10)),
                ('operating_hours', models.JSONField(blank=True, default=list, help_text='List of {day, is_open, open_time, close_time} with HH:MM times')),
                ('rating_average', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(5)])),
                ('total_reviews', models.PositiveIntegerField(default=0)),
                ('is_verified', models.BooleanField(default=False)),
                ('is_available', models.BooleanField(default=True)),
                ('daily_capacity', models.PositiveIntegerField(default=50, validators=[django.core.validators.MinValueValidator(1)])),
                ('current_load', models.PositiveIntegerField(default=0)),
                ('documents', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-rating_average', 'business_name'],
                'indexes': [models.Index(fields=['vendor_type', 'is_verified', 'is_available'], name='vendor_type_flags_idx')],
            },
        ),
    ]
