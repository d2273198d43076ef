"""
Cas d'usage du back-office. Chaque mutation écrit une entrée admin_logs
(CREATE / UPDATE / DELETE) au nom de l'administrateur courant.
"""
from typing import Any, Dict, List, Literal, Optional
import logging

from fastapi import HTTPException
from pydantic import BaseModel

from boutique.admin import repository as admin_repository
from boutique.admin import storage
from boutique.catalog import service as catalog_service
from boutique.catalog.models import CategoryIn, Product, ProductIn, ProductUpdate
from boutique.config import ADMIN_LOGS_LIMIT, RECENT_ORDERS_LIMIT
from boutique.errors import OrderIntrouvable, ServiceIndisponible
from boutique.orders import repository as orders_repository
from boutique.orders import service as orders_service
from boutique.orders.models import Order, OrderStatus
from boutique.utils.security import CurrentUser

logger = logging.getLogger(__name__)

# module boutique.admin.service
ROLES = ("admin", "client", "livreur")


class RoleUpdate(BaseModel):
    role: Literal["admin", "client", "livreur"]


def _with_profiles(rows: List[dict], user_key: str) -> List[dict]:
    """Rattache à chaque ligne le profil de rows[i][user_key] sous la clé 'profiles'."""
    ids = sorted({str(r[user_key]) for r in rows if r.get(user_key)})
    profiles = admin_repository.fetch_profiles_by_ids(ids) if ids else {}
    return [dict(r, profiles=profiles.get(str(r.get(user_key)))) for r in rows]


def log_action(admin: CurrentUser, action: str, entity_type: str, entity_id: Optional[str], details: Optional[Dict[str, Any]] = None) -> None:
    if not admin_repository.insert_admin_log(admin.id, action, entity_type, entity_id, details):
        logger.warning("admin.log not written action=%s entity=%s:%s", action, entity_type, entity_id)

# --- Tableau de bord ---

def dashboard_stats() -> Dict[str, Any]:
    recent = _with_profiles(admin_repository.fetch_admin_orders(limit=RECENT_ORDERS_LIMIT), "user_id")
    return {
        "revenue": str(admin_repository.sum_paid_revenue()),
        "orders_count": admin_repository.count_table_rows("orders"),
        "products_count": admin_repository.count_table_rows("products"),
        "users_count": admin_repository.count_table_rows("profiles"),
        "recent_orders": [Order.from_row(r).model_dump(mode="json") for r in recent],
    }

# --- Produits ---

def list_products(search: Optional[str] = None, category_id: Optional[str] = None) -> List[Product]:
    return catalog_service.search_products(search=search, category_id=category_id, only_available=False)

def create_product(admin: CurrentUser, data: ProductIn) -> Product:
    row = admin_repository.insert_row("products", data.to_row())
    if row is None:
        raise ServiceIndisponible("Erreur lors de la création du produit")
    product = Product.from_row(row)
    log_action(admin, "CREATE", "product", product.id, {"name": product.name})
    return product

def update_product(admin: CurrentUser, product_id: str, data: ProductUpdate) -> Product:
    changes = data.to_row()
    if not changes:
        raise HTTPException(status_code=400, detail="Aucune modification")
    catalog_service.get_product(product_id, include_hidden=True)
    row = admin_repository.update_row("products", product_id, changes)
    if row is None:
        raise ServiceIndisponible("Erreur lors de la mise à jour du produit")
    log_action(admin, "UPDATE", "product", product_id, {"fields": sorted(changes.keys())})
    return Product.from_row(row)

def delete_product(admin: CurrentUser, product_id: str) -> bool:
    product = catalog_service.get_product(product_id, include_hidden=True)
    if not admin_repository.delete_row("products", product_id):
        raise ServiceIndisponible("Erreur lors de la suppression du produit")
    log_action(admin, "DELETE", "product", product_id, {"name": product.name})
    return True

def upload_image(admin: CurrentUser, data: bytes, content_type: Optional[str]) -> str:
    url = storage.upload_product_image(data, content_type)
    log_action(admin, "CREATE", "product", None, {"image_url": url})
    return url

# --- Catégories ---

def create_category(admin: CurrentUser, data: CategoryIn) -> Dict[str, Any]:
    row = admin_repository.insert_row("categories", data.to_row())
    if row is None:
        raise ServiceIndisponible("Erreur lors de la création de la catégorie")
    log_action(admin, "CREATE", "category", row.get("id"), {"name": row.get("name")})
    return row

def update_category(admin: CurrentUser, category_id: str, data: CategoryIn) -> Dict[str, Any]:
    row = admin_repository.update_row("categories", category_id, data.to_row())
    if row is None:
        raise HTTPException(status_code=404, detail="Catégorie introuvable")
    log_action(admin, "UPDATE", "category", category_id, {"name": row.get("name")})
    return row

def delete_category(admin: CurrentUser, category_id: str) -> bool:
    if not admin_repository.delete_row("categories", category_id):
        raise ServiceIndisponible("Erreur lors de la suppression de la catégorie")
    log_action(admin, "DELETE", "category", category_id)
    return True

# --- Commandes ---

def list_orders(status: Optional[str] = None, limit: int = 100) -> List[Order]:
    rows = _with_profiles(admin_repository.fetch_admin_orders(limit=limit, status=status), "user_id")
    return [Order.from_row(r) for r in rows]

def get_order(order_id: str) -> Order:
    order = orders_repository.get_order(order_id)
    if order is None:
        raise OrderIntrouvable()
    return order

def update_order_status(admin: CurrentUser, order_id: str, status: OrderStatus) -> Order:
    order = orders_service.update_order_status(order_id, status)
    log_action(admin, "UPDATE", "order", order_id, {"status": status.value})
    return order

def refund_order(admin: CurrentUser, order_id: str) -> Order:
    order = orders_service.refund_order(order_id)
    log_action(admin, "UPDATE", "order", order_id, {"payment_status": order.payment_status.value})
    return order

# --- Utilisateurs ---

def list_users(limit: int = 200) -> List[Dict[str, Any]]:
    profiles = admin_repository.fetch_profiles(limit=limit)
    roles = admin_repository.fetch_roles_by_user([str(p.get("id")) for p in profiles if p.get("id")])
    return [dict(p, roles=roles.get(str(p.get("id")), [])) for p in profiles]

def set_user_role(admin: CurrentUser, user_id: str, role: str) -> Dict[str, Any]:
    if role not in ROLES:
        raise HTTPException(status_code=400, detail="Rôle invalide")
    if not admin_repository.replace_user_role(user_id, role):
        raise ServiceIndisponible("Erreur lors de la mise à jour du rôle")
    log_action(admin, "UPDATE", "user_role", user_id, {"role": role})
    return {"user_id": user_id, "role": role}

# --- Journal ---

def list_logs(limit: int = ADMIN_LOGS_LIMIT) -> List[Dict[str, Any]]:
    logs = _with_profiles(admin_repository.fetch_admin_logs(limit=limit), "admin_id")
    out = []
    for row in logs:
        data = dict(row)
        profile = data.pop("profiles", None) or {}
        data["admin_email"] = profile.get("email")
        data["admin_name"] = profile.get("full_name")
        out.append(data)
    return out
