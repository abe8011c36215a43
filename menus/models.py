"""
Menu catalogue and the per-plan daily menus.

A ``Menu`` is one dish (or thali) a kitchen can cook. A ``DailyMeal`` is the
admin's choice of lunch and dinner menus for one plan on one date; orders for
that date are cut from it.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

VENDOR_CATEGORY_CHOICES = [
    ('home_chef', 'Home Chef'),
    ('food_vendor', 'Food Vendor'),
]

DIETARY_OPTIONS = [
    'vegetarian', 'vegan', 'gluten-free', 'non-vegetarian',
    'dairy-free', 'halal', 'kosher', 'nut-free',
]

MEAL_TYPES = ('lunch', 'dinner')


class MenuQuerySet(models.QuerySet):
    def available(self):
        return self.filter(is_active=True, is_available=True)

    def for_vendor_types(self, vendor_types):
        return self.filter(vendor_category__in=vendor_types)

    def with_dietary_option(self, option):
        return self.filter(dietary_options__icontains=f'"{option}"')

    def with_tag(self, tag):
        return self.filter(tags__icontains=f'"{tag}"')

    def search(self, term):
        return self.filter(
            Q(food_title__icontains=term)
            | Q(short_description__icontains=term)
            | Q(long_description__icontains=term)
            | Q(cuisine__icontains=term)
            | Q(tags__icontains=term)
        )


class Menu(models.Model):
    food_title = models.CharField(max_length=60)
    image_url = models.URLField(max_length=500)
    sub_images = models.JSONField(default=list, blank=True)
    price = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(0)])
    short_description = models.CharField(max_length=200)
    long_description = models.TextField(max_length=1000, blank=True)
    items = models.JSONField(
        default=list,
        blank=True,
        help_text="List of {name, quantity, unit} making up the meal"
    )
    vendor_category = models.CharField(max_length=20, choices=VENDOR_CATEGORY_CHOICES)
    cuisine = models.CharField(max_length=50)
    prep_time_minutes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    calories = models.PositiveIntegerField()
    dietary_options = models.JSONField(default=list, blank=True)
    is_available = models.BooleanField(default=True)
    rating_average = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(0), MaxValueValidator(5)]
    )
    total_reviews = models.PositiveIntegerField(default=0)
    tags = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MenuQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['vendor_category', 'is_available', 'is_active'], name='menu_category_flags_idx'),
            models.Index(fields=['cuisine'], name='menu_cuisine_idx'),
        ]

    def __str__(self):
        return self.food_title

    def toggle_availability(self):
        self.is_available = not self.is_available
        self.save(update_fields=['is_available', 'updated_at'])

    def suits_plan(self, plan):
        return self.vendor_category in plan.vendor_types


class DailyMealQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_date(self, day):
        return self.active().filter(meal_date=day)

    def between(self, start, end):
        return self.active().filter(meal_date__gte=start, meal_date__lte=end)


class DailyMeal(models.Model):
    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.CASCADE,
        related_name='daily_meals'
    )
    meal_date = models.DateField()
    lunch_menus = models.ManyToManyField(Menu, blank=True, related_name='lunch_daily_meals')
    dinner_menus = models.ManyToManyField(Menu, blank=True, related_name='dinner_daily_meals')
    vendor_type = models.CharField(
        max_length=20,
        blank=True,
        help_text="Kitchen type the menus are meant for; blank when the plan accepts either"
    )
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='+'
    )
    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    notes = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = DailyMealQuerySet.as_manager()

    class Meta:
        ordering = ['-meal_date']
        constraints = [
            models.UniqueConstraint(fields=['subscription', 'meal_date'], name='unique_daily_meal_per_plan'),
        ]

    def __str__(self):
        return f"{self.subscription_id} @ {self.meal_date}"

    @property
    def is_for_today(self):
        return self.meal_date == timezone.localdate()

    @property
    def is_for_future_date(self):
        return self.meal_date > timezone.localdate()

    def menus_for(self, meal_type):
        if meal_type == 'lunch':
            return self.lunch_menus.all()
        if meal_type == 'dinner':
            return self.dinner_menus.all()
        return Menu.objects.none()

    def has_menus(self, meal_type):
        return self.menus_for(meal_type).exists()

    def update_menus(self, lunch_menus, dinner_menus, modified_by=None):
        if lunch_menus is not None:
            self.lunch_menus.set(lunch_menus)
        if dinner_menus is not None:
            self.dinner_menus.set(dinner_menus)
        self.last_modified_by = modified_by
        self.save(update_fields=['last_modified_by', 'updated_at'])
