"""
Erreurs métier de la boutique.

Toutes (sauf PaiementNonConfigure) sont des HTTPException: les services les lèvent,
le handler de boutique.app_setup.exceptions les sérialise en JSON {"detail": ...}.
"""
from typing import Any, Dict, Optional
from fastapi import HTTPException


class ValidationMetier(HTTPException):
    """Règle métier non respectée (panier vide, quantité invalide...)."""

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class StockInsuffisant(HTTPException):
    """Quantité demandée supérieure au stock: le corps nomme le produit fautif."""

    def __init__(self, product_id: str, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        detail: Dict[str, Any] = {
            "message": f"Stock insuffisant pour {product_name}",
            "product_id": product_id,
            "product_name": product_name,
            "requested": requested,
            "available": available,
        }
        super().__init__(status_code=409, detail=detail)


class ProduitIndisponible(HTTPException):
    def __init__(self, detail: str = "Produit indisponible"):
        super().__init__(status_code=409, detail=detail)


class ServiceIndisponible(HTTPException):
    """Échec d'un service externe (Supabase). Message générique, la cause est loggée."""

    def __init__(self, detail: str = "Service momentanément indisponible, veuillez réessayer"):
        super().__init__(status_code=502, detail=detail)


class PaiementIndisponible(HTTPException):
    """Création du paiement impossible: la commande reste en attente."""

    def __init__(self, detail: str = "Le paiement n'a pas pu être initié, veuillez réessayer"):
        super().__init__(status_code=502, detail=detail)


class PaiementRefuse(HTTPException):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=402, detail=detail or "Paiement refusé")


class SignatureInvalide(HTTPException):
    def __init__(self, detail: str = "Signature Stripe invalide"):
        super().__init__(status_code=401, detail=detail)


class OrderIntrouvable(HTTPException):
    def __init__(self, detail: str = "Commande introuvable"):
        super().__init__(status_code=404, detail=detail)


class TransitionInvalide(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)


class PaiementNonConfigure(RuntimeError):
    """Clé Stripe absente: le checkout bascule sur le paiement simulé."""
