# Generated migration for menus app

from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('subscriptions', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Menu',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('food_title', models.CharField(max_length=60)),
                ('image_url', models.URLField(max_length=500)),
                ('sub_images', models.JSONField(blank=True, default=list)),
                ('price', models.DecimalField(decimal_places=2, max_digits=8, validators=[django.core.validators.MinValueValidator(0)])),
                ('short_description', models.CharField(max_length=200)),
                ('long_description', models.TextField(blank=True, max_length=1000)),
                ('items', models.JSONField(blank=True, default=list, help_text='List of {name, quantity, unit} making up the meal')),
                ('vendor_category', models.CharField(choices=[('home_chef', 'Home Chef'), ('food_vendor', 'Food Vendor')], max_length=20)),
                ('cuisine', models.CharField(max_length=50)),
                ('prep_time_minutes', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('calories', models.PositiveIntegerField()),
                ('dietary_options', models.JSONField(blank=True, default=list)),
                ('is_available', models.BooleanField(default=True)),
                ('rating_average', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(5)])),
                ('total_reviews', models.PositiveIntegerField(default=0)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['vendor_category', 'is_available', 'is_active'], name='menu_category_flags_idx'),
                    models.Index(fields=['cuisine'], name='menu_cuisine_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DailyMeal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('meal_date', models.DateField()),
                ('vendor_type', models.CharField(blank=True, help_text='Kitchen type the menus are meant for; blank when the plan accepts either', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('notes', models.CharField(blank=True, max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('last_modified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='daily_meals', to='subscriptions.subscription')),
                ('lunch_menus', models.ManyToManyField(blank=True, related_name='lunch_daily_meals', to='menus.menu')),
                ('dinner_menus', models.ManyToManyField(blank=True, related_name='dinner_daily_meals', to='menus.menu')),
            ],
            options={
                'ordering': ['-meal_date'],
                'constraints': [models.UniqueConstraint(fields=('subscription', 'meal_date'), name='unique_daily_meal_per_plan')],
            },
        ),
    ]
