import logging

from celery import shared_task
from django.db import transaction
from django.db.models import F

from .models import VendorProfile

logger = logging.getLogger(__name__)


@shared_task
def reset_daily_vendor_capacity() -> int:
    """
    Start-of-day reset of vendor load.

    Vendors that were switched off only because they hit capacity are made
    available again; vendors an admin switched off stay off.
    """
    with transaction.atomic():
        reopened = (
            VendorProfile.objects
            .filter(is_available=False, current_load__gte=F('daily_capacity'))
            .update(is_available=True)
        )
        reset = VendorProfile.objects.filter(current_load__gt=0).update(current_load=0)
    logger.info(f"Reset daily capacity for {reset} vendors ({reopened} reopened)")
    return reset
