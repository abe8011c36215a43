"""
Customer complaints. Anyone can file one; they are looked up again by the
10-digit phone number given when filing.
"""
from django.conf import settings
from django.core.validators import RegexValidator
from django.db import models

phone_number_validator = RegexValidator(r'^[0-9]{10}$', 'Phone number must be 10 digits')


class ComplaintQuerySet(models.QuerySet):
    def for_phone(self, phone_number):
        return self.filter(phone_number=phone_number)


class Complaint(models.Model):
    title = models.CharField(max_length=200)
    reason = models.TextField(max_length=1000)
    name = models.CharField(max_length=100)
    phone_number = models.CharField(max_length=10, validators=[phone_number_validator])
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='complaints',
        help_text="Set when the complaint was filed by a signed-in user"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ComplaintQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['phone_number'], name='complaint_phone_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.phone_number})"

    def visible_to(self, user, phone_number=None):
        if user is not None and user.is_authenticated:
            if user.is_admin_role or self.user_id == user.id:
                return True
        return bool(phone_number) and phone_number == self.phone_number
