# module boutique.catalog.service
from typing import List, Optional
from fastapi import HTTPException
from boutique.catalog import repository
from boutique.catalog.models import Category, Product

def search_products(search: Optional[str] = None, category_id: Optional[str] = None, only_available: bool = True) -> List[Product]:
    """Recherche en mémoire sur le nom et l'ancien propriétaire, filtre optionnel par catégorie."""
    products = repository.list_products(only_available=only_available)
    needle = (search or "").strip()
    if needle:
        products = [p for p in products if p.matches(needle)]
    if category_id and category_id != "all":
        products = [p for p in products if p.category_id == category_id]
    return products

def get_product(product_id: str, include_hidden: bool = False) -> Product:
    product = repository.get_product(product_id)
    if product is None or (not product.is_available and not include_hidden):
        raise HTTPException(status_code=404, detail="Produit introuvable")
    return product

def list_categories() -> List[Category]:
    return repository.list_categories()
