"""
Taxonomie des erreurs du tunnel de paiement.

Aucune de ces erreurs n'est fatale: chacune laisse la page dans un état
actionnable (réessayer, revenir en arrière, changer de moyen de paiement).
- redirect_to: renseigné quand la réponse attendue est une redirection
- status_code: code HTTP utilisé par les handlers de l'API JSON
"""
from typing import Optional

from storefront.config import CART_PATH, DELIVERY_PATH, LOGIN_PATH


class CheckoutError(Exception):
    code = "checkout_error"
    status_code = 400
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, *, redirect_to: Optional[str] = None):
        self.message = message or self.default_message
        self.redirect_to = redirect_to
        super().__init__(self.message)


class PreconditionFailed(CheckoutError):
    """Identité ou adresse de livraison absente: redirection vers l'étape manquante."""
    code = "precondition_failed"
    status_code = 409
    default_message = "Missing delivery or user info"

    def __init__(self, missing: str, message: Optional[str] = None):
        self.missing = missing
        redirect_to = LOGIN_PATH if missing == "identity" else DELIVERY_PATH
        super().__init__(message, redirect_to=redirect_to)
        if missing == "identity":
            self.status_code = 401


class EmptyCartError(CheckoutError):
    code = "empty_cart"
    status_code = 409
    default_message = "Your cart is empty"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, redirect_to=CART_PATH)


class InvalidCouponError(CheckoutError):
    code = "invalid_coupon"
    status_code = 400
    default_message = "Invalid coupon."


class GatewayUnavailable(CheckoutError):
    code = "gateway_unavailable"
    status_code = 503
    default_message = "Razorpay is not configured. Use Cash on Delivery."


class PaymentMethodUnavailable(CheckoutError):
    code = "payment_method_unavailable"
    status_code = 501
    default_message = "PayPal integration coming soon. Use Razorpay or COD for now."


class InvalidTotalError(CheckoutError):
    code = "invalid_total"
    status_code = 400
    default_message = "Discount exceeds order total"


class ConfirmationFailed(CheckoutError):
    code = "confirmation_failed"
    status_code = 402
    default_message = "Payment failed"


class ConfirmationInProgress(CheckoutError):
    code = "confirmation_in_progress"
    status_code = 409
    default_message = "Payment is already being confirmed"


class InvalidTransition(CheckoutError):
    code = "invalid_transition"
    status_code = 409
    default_message = "Action not allowed at this step"


class TransportError(CheckoutError):
    """Échec réseau ou réponse illisible de l'API boutique."""
    code = "transport_error"
    status_code = 502
    default_message = "Something went wrong"
