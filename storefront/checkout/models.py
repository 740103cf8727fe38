"""
Modèle de données du tunnel de paiement.
- Noms camelCase sur le fil (API boutique, JS de la page), snake_case côté Python.
- Les montants sont des float, arrondis à 2 décimales quand ils sont dérivés.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "COD"
    HOSTED_GATEWAY = "Razorpay"
    CARD = "Card"
    PAYPAL = "PayPal"

    @classmethod
    def parse(cls, value: Any) -> "PaymentMethod":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip()
        for method in cls:
            if raw.lower() in (method.value.lower(), method.name.lower()):
                return method
        raise ValueError(f"Unknown payment method: {raw!r}")


METHOD_LABELS: Dict[PaymentMethod, str] = {
    PaymentMethod.CASH_ON_DELIVERY: "Cash on Delivery",
    PaymentMethod.HOSTED_GATEWAY: "Razorpay",
    PaymentMethod.CARD: "Card",
    PaymentMethod.PAYPAL: "PayPal",
}

METHOD_HINTS: Dict[PaymentMethod, str] = {
    PaymentMethod.CASH_ON_DELIVERY: "Pay when your order is delivered.",
    PaymentMethod.HOSTED_GATEWAY: "Pay securely via Razorpay (UPI, cards, netbanking).",
    PaymentMethod.CARD: "Credit/Debit card payment via Razorpay.",
    PaymentMethod.PAYPAL: "PayPal integration coming soon. Use Razorpay or COD for now.",
}


class SummaryItem(WireModel):
    product_id: str
    product_name: str = ""
    quantity: int = 0
    item_total: float = 0.0

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return "" if v is None else str(v)


class CheckoutSummary(WireModel):
    """Instantané tarifé du panier, calculé par le serveur (source de vérité)."""
    items: List[SummaryItem] = Field(default_factory=list)
    total_amount: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.items


class DeliveryDetails(WireModel):
    # Les champs inconnus sont conservés et transmis tels quels à la confirmation
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    full_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class GatewayOrder(WireModel):
    order_id: str
    amount: float
    currency: str


class GatewayResult(BaseModel):
    """Résultat rapporté par le widget hébergé (callback navigateur)."""
    success: bool
    transaction_id: Optional[str] = None
    order_id: Optional[str] = None
    signature: Optional[str] = None
    error: Optional[str] = None


class ConfirmationRequest(WireModel):
    user_id: str
    delivery: Dict[str, Any]
    discount: float
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None


def final_total(total_amount: float, discount: float) -> float:
    """FinalTotal = totalAmount - discount, sans plafonnement."""
    return round(float(total_amount) - float(discount or 0), 2)


def format_amount(amount: float) -> str:
    """Affichage façon toLocaleString: pas de décimales inutiles."""
    value = round(float(amount or 0), 2)
    if value == int(value):
        return f"{int(value):,}"
    return f"{value:,.2f}"
