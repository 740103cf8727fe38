from fastapi import FastAPI, Request
from storefront.config import COOKIE_SECURE, SHOP_API_URL

# Widget hébergé: script chargé depuis checkout.razorpay.com, iframe de paiement sur api.razorpay.com
GATEWAY_SCRIPT_SOURCES = ["https://checkout.razorpay.com"]
GATEWAY_FRAME_SOURCES = ["https://api.razorpay.com", "https://checkout.razorpay.com"]

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")

        csp_connect = ["'self'", SHOP_API_URL.rstrip("/")] + GATEWAY_FRAME_SOURCES
        csp = (
            "default-src 'self'; "
            "base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
            "img-src 'self' data: blob:; "
            "style-src 'self' 'unsafe-inline'; "
            f"script-src 'self' 'unsafe-inline' {' '.join(GATEWAY_SCRIPT_SOURCES)}; "
            f"frame-src {' '.join(GATEWAY_FRAME_SOURCES)}; "
            f"connect-src {' '.join(csp_connect)}"
        )
        response.headers["Content-Security-Policy"] = csp
        return response
