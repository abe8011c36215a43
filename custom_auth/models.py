# custom_auth/models.py

import secrets
import string

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8


def generate_referral_code(length=REFERRAL_CODE_LENGTH):
    return ''.join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


class CustomUser(AbstractUser):

    class Role(models.TextChoices):
        USER = 'user', 'Customer'
        VENDOR = 'vendor', 'Vendor'
        ADMIN = 'admin', 'Admin'

    role = models.CharField(max_length=10, choices=Role.choices, default=Role.USER)
    phone_number = models.CharField(max_length=20, blank=True)

    # Referral program
    referral_code = models.CharField(max_length=12, unique=True, blank=True, null=True)
    referred_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='referrals'
    )
    used_referral_code = models.CharField(max_length=12, blank=True)
    is_referral_used = models.BooleanField(
        default=False,
        help_text="Set once the referral reward for this user's first purchase has been paid out"
    )
    total_referral_credits = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    referral_credits_used = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    wallet_credits = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    # Admin moderation; a banned account is also inactive so it cannot sign in
    is_banned = models.BooleanField(default=False)
    ban_reason = models.CharField(max_length=255, blank=True)
    banned_at = models.DateTimeField(null=True, blank=True)
    banned_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    def save(self, *args, **kwargs):
        if not self.referral_code:
            self.referral_code = self._unique_referral_code()
        super().save(*args, **kwargs)

    @classmethod
    def _unique_referral_code(cls):
        code = generate_referral_code()
        while cls.objects.filter(referral_code=code).exists():
            code = generate_referral_code()
        return code

    @property
    def is_admin_role(self):
        return self.role == self.Role.ADMIN or self.is_staff

    @property
    def is_vendor_role(self):
        return self.role == self.Role.VENDOR

    @property
    def available_referral_credits(self):
        return self.total_referral_credits - self.referral_credits_used

    def ban(self, admin, reason):
        self.is_banned = True
        self.is_active = False
        self.ban_reason = reason[:255]
        self.banned_at = timezone.now()
        self.banned_by = admin
        self.save(update_fields=['is_banned', 'is_active', 'ban_reason', 'banned_at', 'banned_by'])

    def unban(self):
        self.is_banned = False
        self.is_active = True
        self.ban_reason = ''
        self.banned_at = None
        self.banned_by = None
        self.save(update_fields=['is_banned', 'is_active', 'ban_reason', 'banned_at', 'banned_by'])

    def toggle_active(self):
        self.is_active = not self.is_active
        self.save(update_fields=['is_active'])

    def __str__(self):
        return self.username


class UserProfile(models.Model):
    """Food preferences used when suggesting plans and menus."""

    class SpiceLevel(models.TextChoices):
        MILD = 'mild', 'Mild'
        MEDIUM = 'medium', 'Medium'
        HOT = 'hot', 'Hot'
        EXTRA_HOT = 'extra_hot', 'Extra hot'

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='profile')
    dietary_preferences = models.JSONField(default=list, blank=True)
    cuisine_types = models.JSONField(default=list, blank=True)
    spice_level = models.CharField(max_length=10, choices=SpiceLevel.choices, default=SpiceLevel.MEDIUM)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Profile({self.user_id})"

    @classmethod
    def for_user(cls, user):
        profile, _ = cls.objects.get_or_create(user=user)
        return profile


class Address(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='addresses')
    label = models.CharField(max_length=50)
    street = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=6, validators=[RegexValidator(r'^[0-9]{6}$', 'Pincode must be 6 digits')])
    landmark = models.CharField(max_length=255, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-is_default', 'created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['user'],
                condition=models.Q(is_default=True),
                name='one_default_address_per_user'
            ),
        ]

    def __str__(self):
        return f"{self.label}: {self.street}, {self.city} {self.pincode}"
