# module storefront.checkout.views

"""Pages et API du tunnel de paiement.
- /payment: page paiement (résumé, coupon, moyen de paiement, confirmation)
- /success: page terminale, affiche la facture stockée en session
- /api/v1/checkout/*: endpoints JSON appelés par la page (coupon, méthode, confirmation, widget)
Les CheckoutError remontent aux handlers de l'app (JSON {detail, error, redirect}).
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel, ValidationError
from starlette.status import HTTP_303_SEE_OTHER

from storefront.config import (
    CURRENCY_SYMBOL,
    GATEWAY_NAME,
    GATEWAY_SCRIPT_URL,
    GATEWAY_WIDGET_TIMEOUT,
    HOME_PATH,
    SHOP_NAME,
)
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.templates import templates
from storefront.checkout import service as checkout_service
from storefront.checkout.errors import ConfirmationFailed, EmptyCartError, PreconditionFailed, TransportError
from storefront.checkout.models import DeliveryDetails
from storefront.checkout.orchestrator import Outcome
from storefront.checkout.session_store import SessionStore, get_session_store, read_invoice
from storefront.checkout.state import Failed

logger = logging.getLogger(__name__)
web_router = APIRouter(tags=["Checkout Pages"])
api_router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])


class CouponRequest(BaseModel):
    code: str = ""

class MethodRequest(BaseModel):
    method: str

class CancelRequest(BaseModel):
    reason: str = ""


@web_router.get("/payment", response_class=HTMLResponse)
async def payment_page(request: Request, store: SessionStore = Depends(get_session_store)):
    """Entrée sur l'étape paiement.
    - Identité absente -> /login (avant tout appel au résumé), adresse absente -> /delivery
    - Panier vide -> /cart
    - Résumé indisponible -> page rendue avec message inline, sans résumé
    """
    try:
        context = await checkout_service.open_checkout(store)
    except (PreconditionFailed, EmptyCartError) as e:
        return RedirectResponse(url=e.redirect_to, status_code=HTTP_303_SEE_OTHER)
    except TransportError as e:
        return templates.TemplateResponse(
            request,
            "payment.html",
            {"shop_name": SHOP_NAME, "view": None, "message": e.message, "currency": CURRENCY_SYMBOL},
        )
    return templates.TemplateResponse(
        request,
        "payment.html",
        {
            "shop_name": SHOP_NAME,
            "view": checkout_service.view_model(context),
            "message": None,
            "currency": CURRENCY_SYMBOL,
            "gateway_name": GATEWAY_NAME,
            "gateway_script": GATEWAY_SCRIPT_URL if context.gateway_enabled else None,
            "gateway_timeout": int(GATEWAY_WIDGET_TIMEOUT),
        },
    )

@web_router.get("/success", response_class=HTMLResponse)
def success_page(request: Request, store: SessionStore = Depends(get_session_store)):
    """Page terminale: lit la facture posée par la confirmation (jamais construite localement)."""
    invoice = read_invoice(store)
    if not invoice:
        return RedirectResponse(url=HOME_PATH, status_code=HTTP_303_SEE_OTHER)
    return templates.TemplateResponse(
        request,
        "success.html",
        {"shop_name": SHOP_NAME, "invoice": invoice, "currency": CURRENCY_SYMBOL},
    )


@api_router.post("/delivery")
async def capture_delivery(request: Request, store: SessionStore = Depends(get_session_store)):
    """Enregistre l'adresse de livraison (étape amont) dans la session."""
    try:
        body = await request.json()
        delivery = DeliveryDetails.model_validate(body or {})
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    checkout_service.capture_delivery(store, delivery)
    return {"status": "ok", "delivery": delivery.to_wire()}

@api_router.get("/summary")
async def get_summary(store: SessionStore = Depends(get_session_store)) -> Dict[str, Any]:
    context = await checkout_service.get_checkout(store)
    return checkout_service.view_model(context)

@api_router.post("/coupon", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def apply_coupon(body: CouponRequest, store: SessionStore = Depends(get_session_store)):
    """Valide un code promo auprès de l'API; en cas d'échec la remise repasse à 0 (400)."""
    result = await checkout_service.apply_coupon(store, body.code)
    context = await checkout_service.get_checkout(store)
    return checkout_service.view_model(context, message=result.message, message_type=result.message_type)

@api_router.post("/method")
async def choose_method(body: MethodRequest, store: SessionStore = Depends(get_session_store)):
    try:
        await checkout_service.choose_method(store, body.method)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    context = await checkout_service.get_checkout(store)
    return checkout_service.view_model(context)

@api_router.post("/confirm", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
async def confirm_payment(store: SessionStore = Depends(get_session_store)):
    """Démarre la confirmation.
    - Paiement direct: {state: "confirmed", redirect: "/success", invoice}
    - Passerelle: {state: "awaiting_gateway_result", widget: {...}} à ouvrir côté navigateur
    - Échec: {state: "failed", message} en 402, l'état repasse à idle
    """
    outcome = await checkout_service.confirm(store)
    return _outcome_response(outcome)

@api_router.post("/gateway/callback")
async def gateway_callback(request: Request, store: SessionStore = Depends(get_session_store)):
    """Retour du widget hébergé (handler de succès ou payment.failed)."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    outcome = await checkout_service.gateway_callback(store, payload if isinstance(payload, dict) else {})
    return _outcome_response(outcome)

@api_router.post("/gateway/cancel")
async def gateway_cancel(body: CancelRequest, store: SessionStore = Depends(get_session_store)):
    outcome = await checkout_service.gateway_cancel(store, body.reason or None)
    return _outcome_response(outcome)

@api_router.post("/abandon")
def abandon(store: SessionStore = Depends(get_session_store)):
    checkout_service.abandon_checkout(store)
    return {"status": "ok"}


def _outcome_response(outcome: Outcome) -> JSONResponse:
    # Abandoned reste un 200: la page propose simplement de réessayer
    if isinstance(outcome.state, Failed):
        return JSONResponse(outcome.to_dict(), status_code=ConfirmationFailed.status_code)
    return JSONResponse(outcome.to_dict())
