import logging
from typing import Any, Dict, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from boutique.errors import PaiementNonConfigure, ServiceIndisponible, SignatureInvalide
from boutique.orders.models import ShippingInfo
from boutique.orders.service import order_to_json
from boutique.utils.rate_limit import optional_rate_limit
from boutique.utils.security import CurrentUser, require_user
from boutique.payments import service as payments_service
from boutique.payments import stripe_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Paiements"])


class PaymentIntentRequest(BaseModel):
    order_id: str = Field(min_length=1)


class ConfirmPaymentRequest(BaseModel):
    order_id: str = Field(min_length=1)
    payment_intent_id: str = Field(min_length=1)
    payment_method_id: Optional[str] = None


def _with_order(result: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(result)
    data["order"] = order_to_json(result["order"])
    return data

# module boutique.payments.views
@router.post("/checkout", status_code=201, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout(shipping: ShippingInfo, user: CurrentUser = Depends(require_user)):
    """
    Passe la commande du panier courant.
    - 201 {order, client_secret, payment_intent_id, publishable_key, simulated: false}
    - 201 {order, simulated: true} si Stripe n'est pas configuré (commande déjà payée)
    - 409 StockInsuffisant (aucune écriture), 502 si la création du paiement échoue
    """
    return _with_order(payments_service.start_checkout(user, shipping))

@router.post("/payments/intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_intent(body: PaymentIntentRequest, user: CurrentUser = Depends(require_user)):
    """Nouvelle tentative de paiement pour une commande encore en attente."""
    return _with_order(payments_service.retry_payment(user, body.order_id))

@router.post("/payments/confirm", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def confirm(body: ConfirmPaymentRequest, user: CurrentUser = Depends(require_user)):
    """
    Confirmation côté client après stripe.confirmPayment (ou confirmation serveur
    si payment_method_id est fourni). 402 si le paiement est refusé.
    """
    result = payments_service.confirm_payment(
        user,
        order_id=body.order_id,
        payment_intent_id=body.payment_intent_id,
        payment_method_id=body.payment_method_id,
    )
    return _with_order(result)

@router.post("/payments/webhook", include_in_schema=False)
async def stripe_webhook(request: Request):
    """
    Webhook Stripe: vérifie la signature puis réconcilie la commande.
    - 500 si Stripe ou le secret webhook n'est pas configuré
    - 401 si la signature (ou le payload) est invalide, aucun état modifié
    - 500 si la base est indisponible, pour que Stripe relivre l'événement
    """
    try:
        event = await stripe_client.parse_event(request)
    except PaiementNonConfigure as e:
        logger.error("payments.webhook not configured: %s", e)
        raise HTTPException(status_code=500, detail="Stripe n'est pas configuré")
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("payments.webhook invalid signature")
        raise SignatureInvalide()

    try:
        result = payments_service.handle_webhook_event(event)
    except ServiceIndisponible:
        raise HTTPException(status_code=500, detail="Webhook handler failed")
    logger.info("payments.webhook type=%s status=%s", event.get("type"), result.get("status"))
    return result
