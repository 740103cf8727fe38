"""
Gestionnaires d'exceptions.
- CheckoutError: JSON {detail, error, redirect} pour l'API; redirection 303 pour les pages
  HTML quand l'erreur désigne une étape à reprendre (login, livraison, panier).
- HTTPException 401/403 sur une page HTML: redirection vers la page de connexion.
"""
import logging
import urllib.parse
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from storefront.config import LOGIN_PATH
from storefront.checkout.errors import CheckoutError

logger = logging.getLogger(__name__)

def _wants_html(request: Request) -> bool:
    accept = (request.headers.get("accept") or "").lower()
    return "text/html" in accept and not request.url.path.startswith("/api/")

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        logger.info("checkout.error path=%s code=%s message=%s", request.url.path, exc.code, exc.message)
        if exc.redirect_to and _wants_html(request):
            return RedirectResponse(url=exc.redirect_to, status_code=HTTP_303_SEE_OTHER)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.code, "redirect": exc.redirect_to},
        )

    @app.exception_handler(HTTPException)
    async def html_redirect_on_auth_errors(request: Request, exc: HTTPException):
        if exc.status_code in (401, 403) and _wants_html(request):
            detail = str(getattr(exc, "detail", "")) or (
                "Please log in" if exc.status_code == 401 else "Access denied"
            )
            msg = urllib.parse.quote_plus(detail)
            return RedirectResponse(url=f"{LOGIN_PATH}?error={msg}", status_code=HTTP_303_SEE_OTHER)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
