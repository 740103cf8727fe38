"""
ASGI entrypoint: expose `app` pour les process managers (uvicorn, gunicorn + UvicornWorker).
Toute la configuration est centralisée dans storefront.app_setup.factory.
"""

from storefront.app import app

__all__ = ["app"]
