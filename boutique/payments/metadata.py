"""
Métadonnées attachées aux PaymentIntent (orderId, userId, itemCount).
Stripe n'accepte que des chaînes: les valeurs sont converties.
"""
from typing import Any, Dict, Optional

from boutique.orders.models import Order

# module boutique.payments.metadata
def build_intent_metadata(order: Order) -> Dict[str, str]:
    return {
        "orderId": order.id,
        "userId": order.user_id,
        "itemCount": str(sum(i.quantity for i in order.items)),
    }

def extract_order_id(intent: Dict[str, Any]) -> Optional[str]:
    """Commande liée à un PaymentIntent normalisé (metadata.orderId, ou order_id en secours)."""
    meta = (intent or {}).get("metadata") or {}
    order_id = meta.get("orderId") or meta.get("order_id")
    return str(order_id) if order_id else None
