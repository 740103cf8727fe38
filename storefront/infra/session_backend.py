"""
Données de session côté serveur (contexte du paiement, adresse, facture).

Le cookie signé de SessionMiddleware ne porte qu'un identifiant aléatoire ("sid");
les données vivent dans Redis, avec une durée de vie glissante.
- MemorySessionBackend: dev/tests, un seul process (même logique que le fallback
  mémoire du rate limiting)
- ServerSessionMiddleware: charge les données avant l'app, les enregistre avant
  l'envoi des en-têtes de réponse
"""
import json
import logging
import secrets
import time
from typing import Any, Dict, Optional, Tuple

from redis import asyncio as aioredis
from redis.exceptions import RedisError
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from storefront.config import SESSION_BACKEND, SESSION_REDIS_URL, SESSION_TTL

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "sid"
SERVER_SESSION_SCOPE_KEY = "server_session"


class MemorySessionBackend:
    def __init__(self, ttl: int = SESSION_TTL):
        self.ttl = ttl
        self._items: Dict[str, Tuple[float, str]] = {}

    async def load(self, sid: str) -> Dict[str, Any]:
        item = self._items.get(sid)
        if item is None:
            return {}
        expires_at, raw = item
        if expires_at < time.monotonic():
            self._items.pop(sid, None)
            return {}
        return json.loads(raw)

    async def save(self, sid: str, data: Dict[str, Any]) -> None:
        self._items[sid] = (time.monotonic() + self.ttl, json.dumps(data))

    async def touch(self, sid: str) -> None:
        item = self._items.get(sid)
        if item is not None:
            self._items[sid] = (time.monotonic() + self.ttl, item[1])

    async def delete(self, sid: str) -> None:
        self._items.pop(sid, None)

    async def close(self) -> None:
        self._items.clear()


class RedisSessionBackend:
    def __init__(self, client, ttl: int = SESSION_TTL, prefix: str = "storefront:session:"):
        self.client = client
        self.ttl = ttl
        self.prefix = prefix

    def _key(self, sid: str) -> str:
        return f"{self.prefix}{sid}"

    async def load(self, sid: str) -> Dict[str, Any]:
        raw = await self.client.get(self._key(sid))
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("session_backend.load invalid json sid=%s", sid[:6])
            return {}
        return data if isinstance(data, dict) else {}

    async def save(self, sid: str, data: Dict[str, Any]) -> None:
        await self.client.set(self._key(sid), json.dumps(data), ex=self.ttl)

    async def touch(self, sid: str) -> None:
        await self.client.expire(self._key(sid), self.ttl)

    async def delete(self, sid: str) -> None:
        await self.client.delete(self._key(sid))

    async def close(self) -> None:
        await self.client.aclose()


_backend = None

def get_session_backend():
    """Backend courant; mémoire tant que le lifespan n'en a pas installé un autre."""
    global _backend
    if _backend is None:
        _backend = MemorySessionBackend()
    return _backend

def set_session_backend(backend) -> None:
    global _backend
    _backend = backend

async def init_session_backend():
    """
    Installe le backend choisi par SESSION_BACKEND.
    - Redis injoignable au démarrage: repli sur la mémoire (un seul process), avec warning.
    """
    if SESSION_BACKEND == "memory":
        backend = MemorySessionBackend()
        logger.info("Session storage: local in-memory")
    else:
        client = aioredis.from_url(SESSION_REDIS_URL, encoding="utf-8", decode_responses=True)
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning("Session storage falling back to local in-memory due to init error: %s", e)
            await client.aclose()
            backend = MemorySessionBackend()
        else:
            backend = RedisSessionBackend(client)
            logger.info("Session storage: redis")
    set_session_backend(backend)
    return backend

async def close_session_backend() -> None:
    global _backend
    if _backend is not None:
        await _backend.close()
    _backend = None


class ServerSessionMiddleware:
    """
    À placer sous SessionMiddleware: lit/écrit l'identifiant dans scope["session"]
    et expose les données serveur dans scope["server_session"].
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        cookie_session = scope.get("session")
        assert cookie_session is not None, "SessionMiddleware must be installed above ServerSessionMiddleware"
        backend = get_session_backend()
        sid: Optional[str] = cookie_session.get(SESSION_ID_KEY)
        data: Dict[str, Any] = await backend.load(sid) if sid else {}
        initial = json.dumps(data, sort_keys=True)
        scope[SERVER_SESSION_SCOPE_KEY] = data

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                await _persist(backend, cookie_session, data, initial)
            await send(message)

        await self.app(scope, receive, send_wrapper)


async def _persist(backend, cookie_session: Dict[str, Any], data: Dict[str, Any], initial: str) -> None:
    sid = cookie_session.get(SESSION_ID_KEY)
    if json.dumps(data, sort_keys=True) == initial:
        if sid and data:
            await backend.touch(sid)
        return
    if not data:
        if sid:
            await backend.delete(sid)
            cookie_session.pop(SESSION_ID_KEY, None)
        return
    if not sid:
        sid = secrets.token_urlsafe(32)
        cookie_session[SESSION_ID_KEY] = sid
    await backend.save(sid, data)
