# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

"""
Configuration centrale du storefront.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Expose l'URL de l'API boutique et son timeout
- Sécurité: session signée, cookies, CORS/hosts
- Passerelle de paiement hébergée (Razorpay): nom, devise, délai d'attente du widget
- Chemins de redirection du tunnel (login, livraison, panier, succès)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _float_env(name: str, default: float) -> float:
    try:
        return float(_clean_env(os.getenv(name)) or default)
    except ValueError:
        return default

# API boutique distante (catalogue, panier, coupons, commandes)
# - SHOP_API_URL peut être fourni sans schéma: on préfixe en https:// si nécessaire
SHOP_API_URL = _clean_env(os.getenv("SHOP_API_URL") or "http://localhost:5000")
if SHOP_API_URL and not SHOP_API_URL.startswith("http"):
    SHOP_API_URL = "https://" + SHOP_API_URL
if SHOP_API_URL.endswith("/"):
    SHOP_API_URL = SHOP_API_URL.rstrip("/")
SHOP_API_TIMEOUT = _float_env("SHOP_API_TIMEOUT", 10.0)

# Session (stockage durable côté navigateur, cookie signé) et sécurité cookies
SESSION_SECRET_KEY = _clean_env(os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret")
SESSION_COOKIE_NAME = _clean_env(os.getenv("SESSION_COOKIE_NAME") or "dd_session")
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# Données de session côté serveur: le cookie ne porte qu'un identifiant
# - SESSION_BACKEND: "redis" (défaut) ou "memory" (dev/tests, un seul process)
# - SESSION_TTL: durée de vie (secondes) des données sans écriture
SESSION_BACKEND = _clean_env(os.getenv("SESSION_BACKEND") or "redis").lower()
SESSION_REDIS_URL = _clean_env(os.getenv("SESSION_REDIS_URL") or "redis://127.0.0.1:6379/1")
SESSION_TTL = int(_float_env("SESSION_TTL", 14 * 24 * 3600))

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Boutique et passerelle hébergée
SHOP_NAME = _clean_env(os.getenv("SHOP_NAME") or "Dangly Dreams")
GATEWAY_NAME = _clean_env(os.getenv("GATEWAY_NAME") or "Razorpay")
GATEWAY_CURRENCY = _clean_env(os.getenv("GATEWAY_CURRENCY") or "INR")
GATEWAY_SCRIPT_URL = _clean_env(os.getenv("GATEWAY_SCRIPT_URL") or "https://checkout.razorpay.com/v1/checkout.js")
# Durée max (secondes) pendant laquelle le widget peut rester ouvert avant abandon
GATEWAY_WIDGET_TIMEOUT = _float_env("GATEWAY_WIDGET_TIMEOUT", 900.0)

# Pages du tunnel gérées par les autres écrans de la boutique
LOGIN_PATH = os.getenv("LOGIN_PATH", "/login")
DELIVERY_PATH = os.getenv("DELIVERY_PATH", "/delivery")
CART_PATH = os.getenv("CART_PATH", "/cart")
SUCCESS_PATH = os.getenv("SUCCESS_PATH", "/success")
HOME_PATH = os.getenv("HOME_PATH", "/")
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "€")
