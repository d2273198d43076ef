"""
Factory d'application utilisée par les entrypoints (boutique.app, boutique.asgi).
L'ordre d'enregistrement des middlewares compte: le dernier ajouté s'exécute en premier.
"""
import logging
import os
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_force_https_middleware
from .security import register_security_middleware
from .exceptions import register_exception_handlers
from .routes import register_routes
from .routers import register_routers
from boutique.utils.csrf import register_csrf_middleware

def configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Boutique Joaillerie", lifespan=lifespan)
    register_basic_middlewares(app)
    register_csrf_middleware(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    register_force_https_middleware(app)
    return app
