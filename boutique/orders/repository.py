"""
Accès aux données des commandes (tables orders, order_items), via service-role.

Contrairement aux autres repositories, une erreur Supabase n'est pas convertie en valeur
neutre: le tunnel de paiement doit distinguer « introuvable » (None) d'une panne
(ServiceIndisponible, la cause est loggée).
"""
from typing import Any, Dict, List, Optional
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.errors import ServiceIndisponible
from boutique.orders.models import Order, OrderItem

logger = logging.getLogger(__name__)

ORDER_SELECT = "*, order_items(*, products(name))"

# module boutique.orders.repository
def insert_order(payload: Dict[str, Any]) -> Order:
    """Insère l'en-tête de commande et retourne la ligne créée."""
    try:
        res = supabase_client.get_service_supabase().table("orders").insert(payload).execute()
        rows = res.data or []
    except Exception:
        logger.exception("orders.repository.insert_order failed user_id=%s", payload.get("user_id"))
        raise ServiceIndisponible()
    if not rows:
        logger.error("orders.repository.insert_order returned no row user_id=%s", payload.get("user_id"))
        raise ServiceIndisponible()
    return Order.from_row(rows[0])

def insert_order_items(order_id: str, items: List[Dict[str, Any]]) -> List[OrderItem]:
    """Insère toutes les lignes en un seul appel (un seul INSERT multi-lignes)."""
    payload = [dict(it, order_id=order_id) for it in items]
    try:
        res = supabase_client.get_service_supabase().table("order_items").insert(payload).execute()
        rows = res.data or []
    except Exception:
        logger.exception("orders.repository.insert_order_items failed order_id=%s", order_id)
        raise ServiceIndisponible()
    if len(rows) != len(payload):
        logger.error("orders.repository.insert_order_items partial order_id=%s rows=%s", order_id, len(rows))
        raise ServiceIndisponible()
    return [OrderItem.from_row(r) for r in rows]

def delete_order(order_id: str) -> bool:
    """Compensation: supprime une commande dont les lignes n'ont pas pu être écrites."""
    try:
        client = supabase_client.get_service_supabase()
        client.table("order_items").delete().eq("order_id", order_id).execute()
        client.table("orders").delete().eq("id", order_id).execute()
        return True
    except Exception:
        logger.exception("orders.repository.delete_order failed id=%s", order_id)
        return False

def get_order(order_id: str) -> Optional[Order]:
    if not order_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_SELECT)
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
    except Exception:
        logger.exception("orders.repository.get_order failed id=%s", order_id)
        raise ServiceIndisponible()
    return Order.from_row(rows[0]) if rows else None

def list_user_orders(user_id: str) -> List[Order]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_SELECT)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.list_user_orders failed user_id=%s", user_id)
        raise ServiceIndisponible()
    return [Order.from_row(r) for r in (res.data or [])]

def transition_order(order_id: str, changes: Dict[str, Any], expected: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Mise à jour conditionnelle: UPDATE orders SET changes WHERE id = order_id AND <expected>.
    - Retourne la ligne mise à jour, ou None si la condition ne correspondait plus
      (un autre appelant a déjà effectué la transition).
    """
    try:
        query = (
            supabase_client.get_service_supabase()
            .table("orders")
            .update(changes)
            .eq("id", order_id)
        )
        for column, value in expected.items():
            query = query.eq(column, value)
        res = query.execute()
        rows = res.data or []
    except Exception:
        logger.exception("orders.repository.transition_order failed id=%s changes=%s", order_id, changes)
        raise ServiceIndisponible()
    return rows[0] if rows else None
