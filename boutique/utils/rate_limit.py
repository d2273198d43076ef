"""
Limitation de débit optionnelle pour les routes sensibles (connexion, checkout, confirmation).

- Backend normal: fastapi-limiter (Redis), initialisé dans le lifespan.
- LOCAL_RATE_LIMIT_FALLBACK=1: compteur en mémoire dans app.state (dev/tests).
- Si le lifespan a désactivé le limiter (app.state.rate_limit_enabled=False), aucune limite.
"""
from typing import Dict, Any, List
from fastapi import Request, Response, HTTPException
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from urllib.parse import urlparse
import hashlib
import logging
import os
import time
from boutique.utils.security import extract_token

logger = logging.getLogger(__name__)

def client_key(request: Request) -> str:
    """Clé de comptage: token de session hashé si présent, sinon IP, toujours suffixée par le chemin."""
    token = extract_token(request)
    path = request.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{h}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"

def _local_hit(request: Request, times: int, seconds: int) -> None:
    now = time.time()
    key = client_key(request)
    store: Dict[str, List[float]] = getattr(request.app.state, "_rl_store", {})
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail="Trop de requêtes, réessayez plus tard")
    hits.append(now)
    store[key] = hits
    request.app.state._rl_store = store

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, times, seconds)
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        async def _identifier(req: Request) -> str:
            return client_key(req)

        try:
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis injoignable: pas de 429 en prod, utiliser LOCAL_RATE_LIMIT_FALLBACK=1 en dev
            logger.exception("utils.rate_limit limiter failed path=%s", request.url.path)
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)

    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else ("memory" if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1" else None),
    }

    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if limiter_ready and redis_url:
        p = urlparse(redis_url)
        info["redis"] = {"scheme": p.scheme, "host": p.hostname, "port": p.port}
    return info
