"""
Cas d'usage 'payments': orchestre commandes, Stripe et metadata.

- start_checkout: panier -> commande pending -> PaymentIntent (ou paiement simulé sans Stripe)
- retry_payment: nouvelle tentative sur une commande encore en attente
- confirm_payment: chemin client après confirmation Stripe.js (ou confirmation serveur)
- handle_webhook_event: réconciliation asynchrone payment_intent.succeeded / payment_failed
Les deux chemins de confirmation aboutissent à orders.service.finalize_order (idempotent).
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional
import logging

import stripe
from fastapi import HTTPException

from boutique import config
from boutique.errors import (
    OrderIntrouvable,
    PaiementIndisponible,
    PaiementNonConfigure,
    PaiementRefuse,
    ServiceIndisponible,
    ValidationMetier,
)
from boutique.orders import repository as orders_repository
from boutique.orders import service as orders_service
from boutique.orders.models import Order, OrderStatus, PaymentStatus, ShippingInfo
from boutique.utils.security import CurrentUser
from . import metadata as meta
from . import stripe_client

logger = logging.getLogger(__name__)

SIMULATED_REFERENCE = "simulated"
EVENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_FAILED = "payment_intent.payment_failed"
PENDING_INTENT_STATUSES = {"processing", "requires_action", "requires_capture"}
CONFIRMABLE_INTENT_STATUSES = {"requires_payment_method", "requires_confirmation"}

# module boutique.payments.service
def to_minor_units(amount: Decimal) -> int:
    """Montant en unités monétaires -> centimes (arrondi au plus proche, demi vers le haut)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def create_payment_session(
    *,
    amount: Decimal,
    order_id: str,
    metadata: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Crée le PaymentIntent de la commande.
    - PaiementNonConfigure si Stripe n'est pas configuré (l'appelant choisit le repli simulé)
    - PaiementIndisponible pour tout autre échec: la commande reste pending/pending
    Retour: {client_secret, payment_intent_id, amount, currency}
    """
    amount_cents = to_minor_units(amount)
    if amount_cents <= 0:
        raise ValidationMetier("Montant de commande invalide")
    intent_metadata = dict(metadata or {})
    intent_metadata["orderId"] = order_id
    try:
        intent = stripe_client.create_payment_intent(
            amount=amount_cents,
            currency=config.STRIPE_CURRENCY,
            metadata=intent_metadata,
            idempotency_key=f"order-{order_id}-{amount_cents}",
        )
    except PaiementNonConfigure:
        raise
    except Exception:
        logger.exception("payments.create_payment_session failed order_id=%s amount=%s", order_id, amount_cents)
        raise PaiementIndisponible()
    if not intent.get("client_secret"):
        logger.error("payments.create_payment_session no client_secret order_id=%s intent=%s", order_id, intent.get("id"))
        raise PaiementIndisponible()
    logger.info("payments.intent created order_id=%s intent=%s amount=%s", order_id, intent.get("id"), amount_cents)
    return {
        "client_secret": intent["client_secret"],
        "payment_intent_id": intent.get("id"),
        "amount": amount_cents,
        "currency": config.STRIPE_CURRENCY,
    }

def _session_payload(order: Order) -> Dict[str, Any]:
    session = create_payment_session(
        amount=order.total_amount,
        order_id=order.id,
        metadata=meta.build_intent_metadata(order),
    )
    session["publishable_key"] = config.STRIPE_PUBLIC_KEY or None
    return session

def start_checkout(user: CurrentUser, shipping: ShippingInfo) -> Dict[str, Any]:
    """
    Tunnel complet depuis le panier.
    - Commande créée (pending/pending) puis PaymentIntent
    - Sans Stripe: paiement simulé, la commande est finalisée immédiatement
    """
    order = orders_service.create_order_from_cart(user, shipping)
    try:
        session = _session_payload(order)
    except PaiementNonConfigure:
        logger.warning("payments.checkout Stripe non configuré, paiement simulé order_id=%s", order.id)
        result = orders_service.finalize_order(order.id, source="simulated", payment_reference=SIMULATED_REFERENCE)
        return {"order": result.order, "simulated": True}
    return {"order": order, "simulated": False, **session}

def retry_payment(user: CurrentUser, order_id: str) -> Dict[str, Any]:
    """Réémet un PaymentIntent pour une commande de l'utilisateur encore payable."""
    order = orders_repository.get_order(order_id)
    if order is None or order.user_id != user.id:
        raise OrderIntrouvable()
    if order.status != OrderStatus.PENDING or order.payment_status not in orders_service.PAYABLE_STATUSES:
        raise HTTPException(status_code=409, detail="Cette commande n'est plus en attente de paiement")
    try:
        session = _session_payload(order)
    except PaiementNonConfigure:
        raise ServiceIndisponible("Le paiement en ligne n'est pas disponible")
    return {"order": order, "simulated": False, **session}

def _load_intent(payment_intent_id: str) -> Dict[str, Any]:
    try:
        return stripe_client.retrieve_payment_intent(payment_intent_id)
    except PaiementNonConfigure:
        raise ServiceIndisponible("Le paiement en ligne n'est pas disponible")
    except stripe.InvalidRequestError:
        raise HTTPException(status_code=400, detail="PaymentIntent inconnu")
    except stripe.StripeError:
        logger.exception("payments.confirm retrieve failed intent=%s", payment_intent_id)
        raise ServiceIndisponible()

def confirm_payment(
    user: CurrentUser,
    order_id: str,
    payment_intent_id: str,
    payment_method_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Chemin client: vérifie l'intent Stripe et finalise la commande s'il a réussi.
    - 403 si la commande appartient à un autre utilisateur, 400 si l'intent ne la référence pas
    - Carte refusée: PaiementRefuse (402), commande, stock et panier intacts, nouvel essai possible
    - Intent encore en cours (3-D Secure, processing): {"status": ...}, le webhook finalisera
    """
    order = orders_repository.get_order(order_id)
    if order is None:
        raise OrderIntrouvable()
    if order.user_id != user.id:
        raise HTTPException(status_code=403, detail="Commande appartenant à un autre utilisateur")
    if order.payment_status == PaymentStatus.PAID:
        # Double soumission: déjà finalisée par un autre chemin
        return {"status": "succeeded", "outcome": "already_finalized", "order": order}

    intent = _load_intent(payment_intent_id)
    if meta.extract_order_id(intent) != order.id:
        raise HTTPException(status_code=400, detail="Ce paiement ne correspond pas à la commande")

    if payment_method_id and intent.get("status") in CONFIRMABLE_INTENT_STATUSES:
        try:
            intent = stripe_client.confirm_payment_intent(payment_intent_id, payment_method_id)
        except stripe.CardError as e:
            logger.info("payments.confirm card declined order_id=%s code=%s", order.id, getattr(e, "code", None))
            raise PaiementRefuse(getattr(e, "user_message", None) or "Votre carte a été refusée")
        except stripe.StripeError:
            logger.exception("payments.confirm failed order_id=%s intent=%s", order.id, payment_intent_id)
            raise ServiceIndisponible()

    status = intent.get("status")
    if status == "succeeded":
        result = orders_service.finalize_order(order.id, source="client", payment_reference=intent.get("id") or payment_intent_id)
        return {"status": "succeeded", "outcome": result.outcome.value, "order": result.order}
    if status in PENDING_INTENT_STATUSES:
        return {"status": status, "client_secret": intent.get("client_secret"), "order": order}
    logger.info("payments.confirm not succeeded order_id=%s status=%s", order.id, status)
    raise PaiementRefuse(intent.get("last_payment_error") or "Le paiement n'a pas abouti")

def handle_webhook_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Réconciliation Stripe.
    - payment_intent.succeeded -> finalize_order (idempotent: une redélivrance est sans effet)
    - payment_intent.payment_failed -> payment_status=failed si encore pending
    - autres types / intent sans orderId / commande inconnue -> acquitté et ignoré
    ServiceIndisponible remonte: la vue répond 500 et Stripe relivrera.
    """
    event_type = (event or {}).get("type")
    if event_type not in (EVENT_SUCCEEDED, EVENT_FAILED):
        return {"received": True, "status": "ignored"}

    intent = (event or {}).get("object") or {}
    order_id = meta.extract_order_id(intent)
    if not order_id:
        logger.warning("payments.webhook event without orderId type=%s intent=%s", event_type, intent.get("id"))
        return {"received": True, "status": "ignored"}

    try:
        if event_type == EVENT_SUCCEEDED:
            result = orders_service.finalize_order(order_id, source="webhook", payment_reference=intent.get("id") or "")
            return {"received": True, "status": result.outcome.value}
        changed = orders_service.mark_payment_failed(order_id)
        return {"received": True, "status": "failed" if changed else "unchanged"}
    except OrderIntrouvable:
        logger.warning("payments.webhook unknown order order_id=%s type=%s", order_id, event_type)
        return {"received": True, "status": "unknown_order"}
