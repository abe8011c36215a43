from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date

from .exceptions import DomainError


def parse_date_param(value, name='date'):
    """Parse a ``YYYY-MM-DD`` query parameter; empty values give None."""
    if not value:
        return None
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise DomainError(f"{name} must be a date in YYYY-MM-DD format")
    return parsed


def start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def end_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.max))


def combine_local(day, at):
    """Aware datetime for a local date and wall-clock time."""
    return timezone.make_aware(datetime.combine(day, at))
