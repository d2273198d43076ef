from fastapi import FastAPI
from boutique.config import SUPABASE_URL, COOKIE_SECURE

# Stripe.js (Payment Element) charge ses scripts et iframes depuis ces origines
STRIPE_SOURCES = ["https://js.stripe.com", "https://api.stripe.com", "https://hooks.stripe.com"]
SWAGGER_CDNS = ["https://cdn.jsdelivr.net", "https://unpkg.com"]

def build_csp() -> str:
    csp_connect = ["'self'", "https://api.stripe.com"]
    img_sources = ["https://fastapi.tiangolo.com", "https://*.stripe.com"]
    if SUPABASE_URL:
        csp_connect.append(SUPABASE_URL)
        img_sources.append(SUPABASE_URL)
    csp_connect.extend(SWAGGER_CDNS)
    return (
        "default-src 'self'; "
        "base-uri 'self'; object-src 'none'; frame-ancestors 'none'; "
        f"img-src 'self' data: blob: {' '.join(img_sources)}; "
        f"style-src 'self' 'unsafe-inline' {' '.join(SWAGGER_CDNS)}; "
        f"script-src 'self' 'unsafe-inline' https://js.stripe.com {' '.join(SWAGGER_CDNS)}; "
        f"frame-src {' '.join(STRIPE_SOURCES)}; "
        f"connect-src {' '.join(csp_connect)}"
    )

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        if COOKIE_SECURE:
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains; preload")
        response.headers["Content-Security-Policy"] = build_csp()
        return response
