"""
Registre central des routers (pages web, API v1, health).
"""
from fastapi import FastAPI
from storefront.checkout import views as checkout_views
from storefront.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # Pages web (HTML)
    app.include_router(checkout_views.web_router)
    # API v1
    app.include_router(checkout_views.api_router)
    # Health & monitoring
    app.include_router(health_router)
