from rest_framework import status

from utils.exceptions import DomainError


class SubscriptionError(DomainError):
    """A subscription state rule was violated (credits, cancellation window, vendor switch)."""


class PaymentError(DomainError):
    status_code = status.HTTP_502_BAD_GATEWAY
