from typing import Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile

from boutique.admin import service as admin_service
from boutique.admin.service import RoleUpdate
from boutique.catalog.models import CategoryIn, ProductIn, ProductUpdate
from boutique.catalog import service as catalog_service
from boutique.config import MAX_IMAGE_BYTES
from boutique.orders.models import OrderStatusUpdate
from boutique.orders.service import order_to_json
from boutique.utils.rate_limit import optional_rate_limit
from boutique.utils.security import CurrentUser, require_admin

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])

# module boutique.admin.views
@router.get("/dashboard")
def dashboard():
    """Chiffre d'affaires (commandes payées), compteurs et 10 dernières commandes."""
    return admin_service.dashboard_stats()

# --- Produits ---

@router.get("/products")
def list_products(search: Optional[str] = Query(default=None, max_length=100), category: Optional[str] = None):
    return {"items": [p.model_dump(mode="json") for p in admin_service.list_products(search, category)]}

@router.get("/products/{product_id}")
def get_product(product_id: str):
    return catalog_service.get_product(product_id, include_hidden=True).model_dump(mode="json")

@router.post("/products", status_code=201)
def create_product(body: ProductIn, admin: CurrentUser = Depends(require_admin)):
    return admin_service.create_product(admin, body).model_dump(mode="json")

@router.put("/products/{product_id}")
def update_product(product_id: str, body: ProductUpdate, admin: CurrentUser = Depends(require_admin)):
    return admin_service.update_product(admin, product_id, body).model_dump(mode="json")

@router.delete("/products/{product_id}")
def delete_product(product_id: str, admin: CurrentUser = Depends(require_admin)):
    admin_service.delete_product(admin, product_id)
    return {"ok": True}

@router.post("/products/images", status_code=201, dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
async def upload_product_image(file: UploadFile = File(...), admin: CurrentUser = Depends(require_admin)):
    """Upload multipart vers le bucket product-images, retourne {url}."""
    # Lecture bornée: un octet de plus que la limite suffit pour détecter un fichier trop gros
    data = await file.read(MAX_IMAGE_BYTES + 1)
    url = admin_service.upload_image(admin, data, file.content_type)
    return {"url": url}

# --- Catégories ---

@router.get("/categories")
def list_categories():
    return {"items": [c.model_dump(mode="json") for c in catalog_service.list_categories()]}

@router.post("/categories", status_code=201)
def create_category(body: CategoryIn, admin: CurrentUser = Depends(require_admin)):
    return admin_service.create_category(admin, body)

@router.put("/categories/{category_id}")
def update_category(category_id: str, body: CategoryIn, admin: CurrentUser = Depends(require_admin)):
    return admin_service.update_category(admin, category_id, body)

@router.delete("/categories/{category_id}")
def delete_category(category_id: str, admin: CurrentUser = Depends(require_admin)):
    admin_service.delete_category(admin, category_id)
    return {"ok": True}

# --- Commandes ---

@router.get("/orders")
def list_orders(status: Optional[str] = None, limit: int = Query(default=100, ge=1, le=500)):
    return {"items": [order_to_json(o) for o in admin_service.list_orders(status=status, limit=limit)]}

@router.get("/orders/{order_id}")
def get_order(order_id: str):
    return order_to_json(admin_service.get_order(order_id))

@router.patch("/orders/{order_id}/status")
def update_order_status(order_id: str, body: OrderStatusUpdate, admin: CurrentUser = Depends(require_admin)):
    """Transition de statut contrôlée (409 si non autorisée ou modifiée entre-temps)."""
    return order_to_json(admin_service.update_order_status(admin, order_id, body.status))

@router.post("/orders/{order_id}/refund")
def refund_order(order_id: str, admin: CurrentUser = Depends(require_admin)):
    return order_to_json(admin_service.refund_order(admin, order_id))

# --- Utilisateurs ---

@router.get("/users")
def list_users():
    return {"items": admin_service.list_users()}

@router.put("/users/{user_id}/role")
def set_user_role(user_id: str, body: RoleUpdate, admin: CurrentUser = Depends(require_admin)):
    return admin_service.set_user_role(admin, user_id, body.role)

# --- Journal ---

@router.get("/logs")
def list_logs():
    return {"items": admin_service.list_logs()}
