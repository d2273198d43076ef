"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client Stripe, metadata des PaymentIntent et cas d'usage du tunnel de paiement.
"""

from .metadata import build_intent_metadata, extract_order_id
from .stripe_client import require_stripe, create_payment_intent, retrieve_payment_intent, confirm_payment_intent, parse_event
from .service import (
    to_minor_units,
    create_payment_session,
    start_checkout,
    retry_payment,
    confirm_payment,
    handle_webhook_event,
)

__all__ = [
    # metadata
    "build_intent_metadata",
    "extract_order_id",
    # stripe
    "require_stripe",
    "create_payment_intent",
    "retrieve_payment_intent",
    "confirm_payment_intent",
    "parse_event",
    # services
    "to_minor_units",
    "create_payment_session",
    "start_checkout",
    "retry_payment",
    "confirm_payment",
    "handle_webhook_event",
]
