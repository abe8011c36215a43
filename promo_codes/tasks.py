from celery import shared_task

from . import services


@shared_task
def deactivate_expired_promo_codes() -> int:
    """Nightly sweep switching off codes past ``valid_until``."""
    return services.deactivate_expired()
