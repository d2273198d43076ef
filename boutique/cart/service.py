"""Cas d'usage du panier: consultation, ajout, changement de quantité, retrait."""
from decimal import Decimal
from typing import Any, Dict, List
import logging
from fastapi import HTTPException

from boutique.cart import repository
from boutique.cart.models import CartItem
from boutique.catalog import repository as catalog_repository
from boutique.errors import ProduitIndisponible, ServiceIndisponible, StockInsuffisant
from boutique.utils.security import CurrentUser

logger = logging.getLogger(__name__)

def load_cart(user: CurrentUser) -> List[CartItem]:
    items = repository.list_cart_items(user.id, user.token)
    if items is None:
        raise ServiceIndisponible()
    return items

def cart_total(items: List[CartItem]) -> Decimal:
    return sum((it.line_total for it in items), Decimal("0"))

def get_cart(user: CurrentUser) -> Dict[str, Any]:
    items = load_cart(user)
    return {
        "items": items,
        "total": cart_total(items),
        "count": sum(it.quantity for it in items),
    }

def add_to_cart(user: CurrentUser, product_id: str, quantity: int = 1) -> CartItem:
    """
    Ajoute un produit au panier.
    - Produit masqué ou en rupture: 409
    - Produit déjà présent: 409 (la quantité se modifie via update_quantity)
    - Quantité > stock: StockInsuffisant
    """
    product = catalog_repository.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Produit introuvable")
    if not product.is_available or product.stock_quantity <= 0:
        raise ProduitIndisponible("Ce produit n'est plus disponible")
    if repository.find_cart_item(user.id, product_id, user.token):
        raise HTTPException(status_code=409, detail="Ce produit est déjà dans votre panier")
    if quantity > product.stock_quantity:
        raise StockInsuffisant(product.id, product.name, quantity, product.stock_quantity)

    item = repository.insert_cart_item(user.id, product_id, quantity, user.token)
    if item is None:
        raise ServiceIndisponible()
    logger.info("cart.add user_id=%s product_id=%s quantity=%s", user.id, product_id, quantity)
    return item

def update_quantity(user: CurrentUser, item_id: str, quantity: int) -> CartItem:
    current = repository.get_cart_item(item_id, user.id, user.token)
    if current is None:
        raise HTTPException(status_code=404, detail="Article introuvable dans le panier")
    product = current.product or catalog_repository.get_product(current.product_id)
    if product is not None and quantity > product.stock_quantity:
        raise StockInsuffisant(product.id, product.name, quantity, product.stock_quantity)
    item = repository.update_cart_item_quantity(item_id, user.id, quantity, user.token)
    if item is None:
        raise ServiceIndisponible()
    return item

def remove_from_cart(user: CurrentUser, item_id: str) -> bool:
    if not repository.delete_cart_item(item_id, user.id, user.token):
        raise ServiceIndisponible()
    return True
