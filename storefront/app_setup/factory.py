"""
Factory d'application utilisée par les entrypoints (storefront.app, storefront.asgi).
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import (
    register_basic_middlewares,
    register_force_https_middleware,
    register_no_cache_middleware,
)
from .security import register_security_middleware
from .exceptions import register_exception_handlers
from .routers import register_routers
from storefront.utils.csrf import register_csrf_middleware

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      1) middlewares de base: session, CORS, TrustedHost, ProxyHeaders
      2) CSRF, en-têtes de sécurité, no-cache sur le tunnel
      3) gestionnaires d'exceptions
      4) routers (pages, API checkout, health)
      5) redirection HTTPS, ajoutée en dernier pour s'exécuter en premier
    """
    app = FastAPI(title="Dangly Dreams Storefront", lifespan=lifespan)
    register_basic_middlewares(app)
    register_csrf_middleware(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    register_force_https_middleware(app)
    return app
