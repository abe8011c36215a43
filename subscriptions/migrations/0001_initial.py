# Generated migration for subscriptions app

import datetime
from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('location_zones', '0001_initial'),
        ('promo_codes', '0001_initial'),
        ('vendors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Subscription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('plan_name', models.CharField(max_length=100)),
                ('duration', models.CharField(choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly'), ('custom', 'Custom')], max_length=10)),
                ('custom_duration_days', models.PositiveIntegerField(blank=True, null=True)),
                ('duration_days', models.PositiveIntegerField(default=1, editable=False, help_text='Resolved length of the plan in days')),
                ('meals_per_plan', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('original_price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('discounted_price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('category', models.CharField(choices=[('universal', 'Universal'), ('food_vendor_specific', 'Food vendor specific'), ('home_chef_specific', 'Home chef specific'), ('both_options', 'Both options')], default='universal', max_length=30)),
                ('free_delivery', models.BooleanField(default=False)),
                ('description', models.TextField(blank=True, max_length=1000)),
                ('features', models.JSONField(blank=True, default=list)),
                ('terms', models.TextField(blank=True)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('current_purchases', models.PositiveIntegerField(default=0)),
                ('lunch_available', models.BooleanField(default=True)),
                ('lunch_start', models.TimeField(default=datetime.time(11, 0))),
                ('lunch_end', models.TimeField(default=datetime.time(14, 0))),
                ('dinner_available', models.BooleanField(default=True)),
                ('dinner_start', models.TimeField(default=datetime.time(19, 0))),
                ('dinner_end', models.TimeField(default=datetime.time(22, 0))),
                ('skip_meals_per_plan', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['discounted_price', 'plan_name'],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('transaction_type', models.CharField(choices=[('purchase', 'Purchase'), ('renewal', 'Renewal')], default='purchase', max_length=10)),
                ('original_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('discount_applied', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('amount', models.DecimalField(decimal_places=2, help_text='Amount charged', max_digits=10)),
                ('currency', models.CharField(default='inr', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], default='pending', max_length=10)),
                ('payment_gateway', models.CharField(default='stripe', max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=30)),
                ('payment_intent_id', models.CharField(blank=True, max_length=200, null=True, unique=True)),
                ('failure_reason', models.CharField(blank=True, max_length=255)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('promo_code', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='promo_codes.promocode')),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='subscriptions.subscription')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='UserSubscription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('active', 'Active'), ('expired', 'Expired'), ('cancelled', 'Cancelled'), ('pending', 'Pending'), ('failed', 'Failed')], default='pending', max_length=10)),
                ('credits_granted', models.PositiveIntegerField()),
                ('credits_used', models.PositiveIntegerField(default=0)),
                ('skip_credits_granted', models.PositiveIntegerField(default=0)),
                ('skip_credits_used', models.PositiveIntegerField(default=0)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('auto_renew', models.BooleanField(default=False)),
                ('original_price', models.DecimalField(decimal_places=2, help_text='Plan price before any promo discount', max_digits=10)),
                ('discount_applied', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('final_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('delivery_street', models.CharField(max_length=255)),
                ('delivery_city', models.CharField(max_length=100)),
                ('delivery_state', models.CharField(blank=True, max_length=100)),
                ('delivery_pincode', models.CharField(max_length=6)),
                ('delivery_landmark', models.CharField(blank=True, max_length=255)),
                ('delivery_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('delivery_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('lunch_enabled', models.BooleanField(default=False)),
                ('lunch_time', models.TimeField(blank=True, null=True)),
                ('dinner_enabled', models.BooleanField(default=False)),
                ('dinner_time', models.TimeField(blank=True, null=True)),
                ('vendor_type', models.CharField(blank=True, max_length=20)),
                ('vendor_assigned_at', models.DateTimeField(blank=True, null=True)),
                ('vendor_switch_used', models.BooleanField(default=False)),
                ('payment_completed_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.CharField(blank=True, max_length=500)),
                ('renewal_history', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('delivery_zone', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subscriptions', to='location_zones.locationzone')),
                ('promo_code', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subscriptions', to='promo_codes.promocode')),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='purchases', to='subscriptions.subscription')),
                ('transaction', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='user_subscription', to='subscriptions.transaction')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subscriptions', to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subscriptions', to='vendors.vendorprofile')),
                ('vendor_assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'status'], name='usersub_user_status_idx'),
                    models.Index(fields=['status', 'end_date'], name='usersub_status_end_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorAssignmentHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField()),
                ('ended_at', models.DateTimeField(blank=True, null=True)),
                ('reason', models.CharField(blank=True, max_length=100)),
                ('assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('user_subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_history', to='subscriptions.usersubscription')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignment_history', to='vendors.vendorprofile')),
            ],
            options={
                'ordering': ['-assigned_at'],
                'verbose_name_plural': 'Vendor assignment history',
            },
        ),
    ]
