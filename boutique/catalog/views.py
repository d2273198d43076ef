from typing import Optional
from fastapi import APIRouter, Query
from boutique.catalog import service as catalog_service

router = APIRouter(prefix="/api/v1", tags=["Catalogue"])

# module boutique.catalog.views
@router.get("/products")
def list_products(search: Optional[str] = Query(default=None, max_length=100), category: Optional[str] = None):
    """Produits disponibles (plus récents d'abord), filtrables par texte et catégorie."""
    products = catalog_service.search_products(search=search, category_id=category)
    return {"items": [p.model_dump(mode="json") for p in products]}

@router.get("/products/{product_id}")
def get_product(product_id: str):
    return catalog_service.get_product(product_id).model_dump(mode="json")

@router.get("/categories")
def list_categories():
    return {"items": [c.model_dump(mode="json") for c in catalog_service.list_categories()]}
