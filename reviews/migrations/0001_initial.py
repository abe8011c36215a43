# Generated migration for reviews app

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('orders', '0001_initial'),
        ('subscriptions', '0001_initial'),
        ('vendors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('review_type', models.CharField(choices=[('subscription', 'Subscription'), ('vendor', 'Vendor'), ('order', 'Order')], max_length=15)),
                ('rating', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ('review_text', models.TextField(max_length=1000)),
                ('status', models.CharField(choices=[('active', 'Active'), ('hidden', 'Hidden'), ('reported', 'Reported')], default='active', max_length=10)),
                ('is_verified_purchase', models.BooleanField(default=True)),
                ('moderation_notes', models.CharField(blank=True, max_length=500)),
                ('moderated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('moderated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='orders.order')),
                ('subscription', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='subscriptions.subscription')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='vendors.vendorprofile')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['review_type', 'status'], name='review_type_status_idx'),
                    models.Index(fields=['vendor', 'status', 'rating'], name='review_vendor_status_idx'),
                    models.Index(fields=['subscription', 'status', 'rating'], name='review_plan_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('review_type', 'order')), fields=('user', 'order'), name='unique_order_review_per_user'),
                    models.UniqueConstraint(condition=models.Q(('review_type', 'vendor')), fields=('user', 'vendor'), name='unique_vendor_review_per_user'),
                    models.UniqueConstraint(condition=models.Q(('review_type', 'subscription')), fields=('user', 'subscription'), name='unique_plan_review_per_user'),
                ],
            },
        ),
    ]
