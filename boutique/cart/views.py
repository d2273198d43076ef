from typing import Any, Dict
from fastapi import APIRouter, Depends

from boutique.cart import service as cart_service
from boutique.cart.models import CartAdd, CartItem, CartQuantity
from boutique.utils.security import CurrentUser, require_user

router = APIRouter(prefix="/api/v1/cart", tags=["Panier"])

def _item_json(item: CartItem) -> Dict[str, Any]:
    data = item.model_dump(mode="json")
    data["line_total"] = str(item.line_total)
    return data

# module boutique.cart.views
@router.get("")
def get_cart(user: CurrentUser = Depends(require_user)):
    cart = cart_service.get_cart(user)
    return {
        "items": [_item_json(it) for it in cart["items"]],
        "total": str(cart["total"]),
        "count": cart["count"],
    }

@router.post("", status_code=201)
def add_item(body: CartAdd, user: CurrentUser = Depends(require_user)):
    item = cart_service.add_to_cart(user, body.product_id, body.quantity)
    return _item_json(item)

@router.patch("/{item_id}")
def update_item(item_id: str, body: CartQuantity, user: CurrentUser = Depends(require_user)):
    return _item_json(cart_service.update_quantity(user, item_id, body.quantity))

@router.delete("/{item_id}")
def remove_item(item_id: str, user: CurrentUser = Depends(require_user)):
    cart_service.remove_from_cart(user, item_id)
    return {"ok": True}
