"""
Adaptateur Stripe: centralise la configuration et les appels PaymentIntent / Webhook.
Les objets Stripe sont normalisés en dict simples pour le reste de l'application.
"""
import stripe
from typing import Any, Dict, Optional
from fastapi import Request

from boutique import config
from boutique.errors import PaiementNonConfigure

# module boutique.payments.stripe_client
def is_configured() -> bool:
    return bool(config.STRIPE_SECRET_KEY)

def require_stripe():
    """
    Configure stripe.api_key depuis STRIPE_SECRET_KEY et retourne le module.
    - PaiementNonConfigure si la clé est absente (le checkout passe alors en mode simulé)
    """
    if not config.STRIPE_SECRET_KEY:
        raise PaiementNonConfigure("Stripe n'est pas configuré. Veuillez ajouter STRIPE_SECRET_KEY.")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def _field(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)

def _plain(value: Any) -> Dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return {}

def intent_to_dict(intent: Any) -> Dict[str, Any]:
    """Vue normalisée d'un PaymentIntent: id, status, montant, metadata, erreur éventuelle."""
    error = _field(intent, "last_payment_error")
    return {
        "id": _field(intent, "id"),
        "status": _field(intent, "status"),
        "amount": _field(intent, "amount"),
        "currency": _field(intent, "currency"),
        "client_secret": _field(intent, "client_secret"),
        "metadata": _plain(_field(intent, "metadata")),
        "last_payment_error": _field(error, "message") if error else None,
    }

def create_payment_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent (montant en centimes, moyens de paiement automatiques).
    - idempotency_key: une même commande ne crée qu'un seul intent pour un même montant
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": amount,
        "currency": currency,
        "automatic_payment_methods": {"enabled": True},
        "metadata": metadata,
    }
    if idempotency_key:
        params["idempotency_key"] = idempotency_key
    intent = stripe.PaymentIntent.create(**params)
    return intent_to_dict(intent)

def retrieve_payment_intent(intent_id: str) -> Dict[str, Any]:
    require_stripe()
    return intent_to_dict(stripe.PaymentIntent.retrieve(intent_id))

def confirm_payment_intent(intent_id: str, payment_method: str) -> Dict[str, Any]:
    """Confirmation pilotée par le serveur (stripe.CardError si la carte est refusée)."""
    require_stripe()
    return intent_to_dict(stripe.PaymentIntent.confirm(intent_id, payment_method=payment_method))

async def parse_event(request: Request) -> Dict[str, Any]:
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête stripe-signature, vérifié avec STRIPE_WEBHOOK_SECRET
    - PaiementNonConfigure si la clé ou le secret webhook manque
    - ValueError / stripe.SignatureVerificationError si payload ou signature invalide
    Retour: {"id", "type", "object"} où object est le PaymentIntent normalisé.
    """
    require_stripe()
    if not config.STRIPE_WEBHOOK_SECRET:
        raise PaiementNonConfigure("STRIPE_WEBHOOK_SECRET manquant")
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        raise stripe.SignatureVerificationError("En-tête stripe-signature manquant", sig_header)
    event = stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    data = _field(event, "data")
    return {
        "id": _field(event, "id"),
        "type": _field(event, "type"),
        "object": intent_to_dict(_field(data, "object")),
    }
