from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Review
from .services import refresh_vendor_rating


@receiver(post_save, sender=Review)
@receiver(post_delete, sender=Review)
def update_vendor_rating(sender, instance, **kwargs):
    if instance.review_type == Review.Type.VENDOR and instance.vendor_id:
        refresh_vendor_rating(instance.vendor_id)
