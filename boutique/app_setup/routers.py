"""
Registre central des routers.
- Vitrine: catalogue, panier, commandes, paiement, profil, auth
- Back-office: admin
- Supervision: health
"""
from fastapi import FastAPI
from boutique.auth.views import api_router as auth_api_router
from boutique.catalog import views as catalog_views
from boutique.cart import views as cart_views
from boutique.orders import views as orders_views
from boutique.payments import views as payments_views
from boutique.profiles import views as profiles_views
from boutique.admin.views import router as admin_router
from boutique.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API v1
    app.include_router(auth_api_router)
    app.include_router(catalog_views.router)
    app.include_router(cart_views.router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    app.include_router(profiles_views.router)
    # Back-office
    app.include_router(admin_router)
    app.include_router(health_router)
