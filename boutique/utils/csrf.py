# module boutique.utils.csrf
from fastapi import FastAPI, Request
from fastapi.responses import Response, JSONResponse
import secrets
from boutique.config import COOKIE_SECURE
from boutique.utils.security import COOKIE_NAME

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
# Le webhook Stripe est authentifié par sa signature, pas par cookie
CSRF_EXEMPT_PATHS = {
    "/api/v1/payments/webhook",
}

def get_or_create_csrf_token(request: Request) -> str:
    """Renvoie le token CSRF existant (cookie) ou en crée un nouveau."""
    token = request.cookies.get(CSRF_COOKIE_NAME)
    if not token:
        token = secrets.token_urlsafe(32)
    return token

def attach_csrf_cookie_if_missing(response: Response, request: Request, token: str) -> None:
    if not request.cookies.get(CSRF_COOKIE_NAME):
        response.set_cookie(
            key=CSRF_COOKIE_NAME,
            value=token,
            httponly=False,  # lu par le front pour renvoyer l'en-tête X-CSRF-Token
            secure=COOKIE_SECURE,
            samesite="Lax",
            max_age=60 * 60,
            path="/",
        )

def is_csrf_exempt(path: str) -> bool:
    normalized = path.rstrip("/") or "/"
    return normalized in {p.rstrip("/") or "/" for p in CSRF_EXEMPT_PATHS}

def register_csrf_middleware(app: FastAPI) -> None:
    """
    Double-submit cookie: sur une requête mutative portée par le cookie de session,
    l'en-tête X-CSRF-Token doit égaler le cookie csrf_token.
    Les clients Bearer (sans cookie de session) ne sont pas concernés.
    """
    @app.middleware("http")
    async def csrf_protection(request: Request, call_next):
        method = request.method.upper()
        has_session = bool(request.cookies.get(COOKIE_NAME))
        is_state_changing = method in ("POST", "PUT", "PATCH", "DELETE")
        token = get_or_create_csrf_token(request)

        if is_state_changing and has_session and not is_csrf_exempt(request.url.path):
            header_token = request.headers.get(CSRF_HEADER_NAME, "")
            cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
            if not cookie_token or not header_token or not secrets.compare_digest(header_token, cookie_token):
                return JSONResponse(status_code=403, content={"detail": "CSRF verification failed"})

        response = await call_next(request)
        attach_csrf_cookie_if_missing(response, request, token)
        return response
