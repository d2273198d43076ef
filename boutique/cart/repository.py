"""
Accès aux données du panier (table cart_items).
Les opérations utilisateur passent par le client RLS (token de la requête),
le vidage après paiement passe par le service-role (webhook sans session).
"""
from typing import List, Optional
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.cart.models import CartItem

logger = logging.getLogger(__name__)

CART_SELECT = "id, user_id, product_id, quantity, products(*, categories(name))"

# module boutique.cart.repository
def list_cart_items(user_id: str, user_token: Optional[str] = None) -> Optional[List[CartItem]]:
    """Panier de l'utilisateur avec le produit joint. None si la lecture échoue."""
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("cart_items")
            .select(CART_SELECT)
            .eq("user_id", user_id)
            .order("created_at")
            .execute()
        )
        return [CartItem.from_row(r) for r in (res.data or [])]
    except Exception:
        logger.exception("cart.repository.list_cart_items failed user_id=%s", user_id)
        return None

def get_cart_item(item_id: str, user_id: str, user_token: Optional[str] = None) -> Optional[CartItem]:
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("cart_items")
            .select(CART_SELECT)
            .eq("id", item_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return CartItem.from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("cart.repository.get_cart_item failed id=%s", item_id)
        return None

def find_cart_item(user_id: str, product_id: str, user_token: Optional[str] = None) -> Optional[CartItem]:
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("cart_items")
            .select("id, user_id, product_id, quantity")
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return CartItem.from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("cart.repository.find_cart_item failed user_id=%s product_id=%s", user_id, product_id)
        return None

def insert_cart_item(user_id: str, product_id: str, quantity: int, user_token: Optional[str] = None) -> Optional[CartItem]:
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("cart_items")
            .insert({"user_id": user_id, "product_id": product_id, "quantity": quantity})
            .execute()
        )
        rows = res.data or []
        return CartItem.from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("cart.repository.insert_cart_item failed user_id=%s product_id=%s", user_id, product_id)
        return None

def update_cart_item_quantity(item_id: str, user_id: str, quantity: int, user_token: Optional[str] = None) -> Optional[CartItem]:
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("cart_items")
            .update({"quantity": quantity})
            .eq("id", item_id)
            .eq("user_id", user_id)
            .execute()
        )
        rows = res.data or []
        return CartItem.from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("cart.repository.update_cart_item_quantity failed id=%s", item_id)
        return None

def delete_cart_item(item_id: str, user_id: str, user_token: Optional[str] = None) -> bool:
    try:
        (
            supabase_client.scoped_client(user_token)
            .table("cart_items")
            .delete()
            .eq("id", item_id)
            .eq("user_id", user_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("cart.repository.delete_cart_item failed id=%s", item_id)
        return False

def clear_cart(user_id: str) -> bool:
    """Vide le panier après paiement (service-role: appelable depuis le webhook)."""
    try:
        supabase_client.get_service_supabase().table("cart_items").delete().eq("user_id", user_id).execute()
        return True
    except Exception:
        logger.exception("cart.repository.clear_cart failed user_id=%s", user_id)
        return False
