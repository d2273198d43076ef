"""
Accès aux données du catalogue (tables products, categories).
Lectures via le client anon (catalogue public), décrément de stock via service-role.
Les erreurs de lecture sont loggées et transformées en valeurs neutres ([], None, {}).
"""
from typing import Dict, Iterable, List, Optional
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.catalog.models import Category, Product

logger = logging.getLogger(__name__)

PRODUCT_SELECT = "*, categories(name)"
STOCK_CAS_ATTEMPTS = 3

# module boutique.catalog.repository
def list_products(only_available: bool = True) -> List[Product]:
    """
    Produits triés du plus récent au plus ancien, catégorie jointe.
    - only_available=False pour le back-office (produits masqués inclus)
    """
    try:
        query = supabase_client.get_supabase().table("products").select(PRODUCT_SELECT)
        if only_available:
            query = query.eq("is_available", True)
        res = query.order("created_at", desc=True).execute()
        return [Product.from_row(r) for r in (res.data or [])]
    except Exception:
        logger.exception("catalog.repository.list_products failed only_available=%s", only_available)
        return []

def get_product(product_id: str) -> Optional[Product]:
    if not product_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select(PRODUCT_SELECT)
            .eq("id", product_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return Product.from_row(rows[0]) if rows else None
    except Exception:
        logger.exception("catalog.repository.get_product failed id=%s", product_id)
        return None

def get_products_by_ids(ids: Iterable[str]) -> Optional[Dict[str, Product]]:
    """Retourne {id: Product} pour les IDs demandés (absents ignorés), None si la lecture échoue."""
    id_list = sorted({str(i) for i in ids if i})
    if not id_list:
        return {}
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select(PRODUCT_SELECT)
            .in_("id", id_list)
            .execute()
        )
        products = [Product.from_row(r) for r in (res.data or [])]
        return {p.id: p for p in products}
    except Exception:
        logger.exception("catalog.repository.get_products_by_ids failed ids=%s", id_list)
        return None

def list_categories() -> List[Category]:
    try:
        res = supabase_client.get_supabase().table("categories").select("*").order("name").execute()
        return [Category.model_validate(r) for r in (res.data or [])]
    except Exception:
        logger.exception("catalog.repository.list_categories failed")
        return []

def decrement_stock(product_id: str, quantity: int) -> bool:
    """
    Décrément conditionnel (compare-and-set) du stock.
    - Lit le stock s, refuse si s < quantity
    - Écrit s - quantity uniquement si la ligne vaut encore s, sinon relit (STOCK_CAS_ATTEMPTS essais)
    Retourne True si le stock a été décrémenté. Le stock ne devient jamais négatif.
    """
    if quantity <= 0:
        return True
    try:
        client = supabase_client.get_service_supabase()
        for _ in range(STOCK_CAS_ATTEMPTS):
            res = (
                client.table("products")
                .select("stock_quantity")
                .eq("id", product_id)
                .limit(1)
                .execute()
            )
            rows = res.data or []
            if not rows:
                logger.warning("catalog.repository.decrement_stock unknown product id=%s", product_id)
                return False
            current = int(rows[0].get("stock_quantity") or 0)
            if current < quantity:
                logger.warning(
                    "catalog.repository.decrement_stock refused id=%s stock=%s requested=%s",
                    product_id, current, quantity,
                )
                return False
            upd = (
                client.table("products")
                .update({"stock_quantity": current - quantity})
                .eq("id", product_id)
                .eq("stock_quantity", current)
                .execute()
            )
            if upd.data:
                return True
        logger.warning("catalog.repository.decrement_stock contention id=%s quantity=%s", product_id, quantity)
        return False
    except Exception:
        logger.exception("catalog.repository.decrement_stock failed id=%s quantity=%s", product_id, quantity)
        return False
