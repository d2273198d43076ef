from fastapi import APIRouter, Depends

from boutique.orders import service as orders_service
from boutique.utils.security import CurrentUser, require_user

router = APIRouter(prefix="/api/v1/orders", tags=["Commandes"])

# module boutique.orders.views
@router.get("")
def list_my_orders(user: CurrentUser = Depends(require_user)):
    """Historique des commandes de l'utilisateur, lignes et prix figés inclus."""
    orders = orders_service.list_orders(user)
    return {"items": [orders_service.order_to_json(o) for o in orders]}

@router.get("/{order_id}")
def get_my_order(order_id: str, user: CurrentUser = Depends(require_user)):
    return orders_service.order_to_json(orders_service.get_user_order(user, order_id))
