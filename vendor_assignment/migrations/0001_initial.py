# Generated migration for vendor_assignment app

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('location_zones', '0001_initial'),
        ('subscriptions', '0001_initial'),
        ('vendors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='VendorAssignmentRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('request_type', models.CharField(choices=[('initial_assignment', 'Initial assignment'), ('vendor_switch', 'Vendor switch')], max_length=20)),
                ('reason', models.CharField(choices=[('initial_purchase', 'Initial purchase'), ('poor_food_quality', 'Poor food quality'), ('late_delivery', 'Late delivery'), ('vendor_unavailable', 'Vendor unavailable'), ('dietary_restrictions', 'Dietary restrictions'), ('customer_preference', 'Customer preference'), ('vendor_switch_request', 'Vendor switch request'), ('admin_reassignment', 'Admin reassignment'), ('other', 'Other')], max_length=30)),
                ('description', models.CharField(blank=True, max_length=500)),
                ('requested_vendor_type', models.CharField(blank=True, help_text='home_chef or food_vendor; blank when the plan accepts either', max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('completed', 'Completed')], default='pending', max_length=10)),
                ('priority', models.CharField(blank=True, choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], max_length=10)),
                ('requested_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
                ('admin_notes', models.CharField(blank=True, max_length=500)),
                ('rejection_reason', models.CharField(blank=True, max_length=300)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('current_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='switch_requests_from', to='vendors.vendorprofile')),
                ('delivery_zone', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assignment_requests', to='location_zones.locationzone')),
                ('new_vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assignments_received', to='vendors.vendorprofile')),
                ('preferred_vendors', models.ManyToManyField(blank=True, related_name='preferred_in_requests', to='vendors.vendorprofile')),
                ('processed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='processed_assignment_requests', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_assignment_requests', to=settings.AUTH_USER_MODEL)),
                ('user_subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignment_requests', to='subscriptions.usersubscription')),
            ],
            options={
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['status', 'request_type'], name='var_status_type_idx'),
                    models.Index(fields=['status', 'priority', 'requested_at'], name='var_queue_idx'),
                    models.Index(fields=['delivery_zone', 'status'], name='var_zone_status_idx'),
                ],
            },
        ),
    ]
