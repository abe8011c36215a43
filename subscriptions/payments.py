"""
Stripe PaymentIntent and Refund wrappers for subscription purchases.

Webhooks are not consumed; the client confirms the PaymentIntent and then
calls the verify endpoint, which reads the intent status back from Stripe.
"""
import logging
from decimal import Decimal

import stripe
from django.conf import settings

from .exceptions import PaymentError

logger = logging.getLogger(__name__)

SUCCEEDED = 'succeeded'
FAILED_STATUSES = {'canceled', 'requires_payment_method'}


def to_minor_units(amount) -> int:
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1')))


def create_payment_intent(amount, metadata, idempotency_key=None):
    """Create a PaymentIntent for ``amount`` (major units). Returns ``(intent_id, client_secret)``."""
    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        intent = stripe.PaymentIntent.create(
            amount=to_minor_units(amount),
            currency=settings.PAYMENT_CURRENCY,
            metadata={k: str(v) for k, v in metadata.items()},
            automatic_payment_methods={'enabled': True},
            idempotency_key=idempotency_key,
        )
    except stripe.StripeError as e:
        logger.error(f"Failed to create PaymentIntent: {e}")
        raise PaymentError('Failed to set up payment. Please try again.')
    return intent.id, intent.client_secret


def retrieve_payment_intent(payment_intent_id):
    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id)
    except stripe.StripeError as e:
        logger.error(f"Failed to retrieve PaymentIntent {payment_intent_id}: {e}")
        raise PaymentError('Could not verify payment with the gateway.')
    return intent


def create_refund(payment_intent_id, amount, reason='', idempotency_key=None):
    """Refund ``amount`` (major units) against a PaymentIntent. Returns the Stripe refund id."""
    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        refund = stripe.Refund.create(
            payment_intent=payment_intent_id,
            amount=to_minor_units(amount),
            reason='requested_by_customer',
            metadata={'reason': reason[:500]},
            idempotency_key=idempotency_key,
        )
    except stripe.StripeError as e:
        logger.error(f"Failed to refund PaymentIntent {payment_intent_id}: {e}")
        raise PaymentError('Failed to process refund with the gateway.')
    return refund.id
