from typing import Dict, Optional
import httpx
from storefront.config import SHOP_API_URL, SHOP_API_TIMEOUT

_client: Optional[httpx.AsyncClient] = None

def get_api_client() -> httpx.AsyncClient:
    """
    Client HTTP partagé vers l'API boutique (connexions réutilisées).
    Créé à la première utilisation, fermé par le lifespan de l'app.
    """
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            base_url=SHOP_API_URL,
            timeout=SHOP_API_TIMEOUT,
            headers={"Content-Type": "application/json"},
        )
    return _client

async def close_api_client() -> None:
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
    _client = None

def auth_headers(access_token: Optional[str]) -> Dict[str, str]:
    """En-tête Authorization Bearer si un token est présent dans la session."""
    if access_token:
        return {"Authorization": f"Bearer {access_token}"}
    return {}
