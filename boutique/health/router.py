from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from boutique.health import service as health_service
from boutique.payments import stripe_client
from boutique.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {
        "ok": True,
        "stripe_configured": stripe_client.is_configured(),
        "rate_limit": rate_limit_health_info(request),
    }

@router.get("/supabase")
def health_supabase():
    info = health_service.health_supabase_info()
    return JSONResponse(info, status_code=200 if info.get("connect_ok") else 503)
