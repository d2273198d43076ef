"""Diagnostic de la connexion Supabase (GoTrue + tables du tunnel de commande)."""
from typing import Any, Dict
from urllib.parse import urlparse
import logging

import httpx

import boutique.infra.supabase_client as supabase_client
from boutique.config import SUPABASE_URL, SUPABASE_ANON_KEY

logger = logging.getLogger(__name__)

CHECKED_TABLES = ("products", "categories", "orders", "order_items")

def _check_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def _check_auth() -> Dict[str, Any]:
    if not SUPABASE_URL:
        return {"ok": False, "error": "SUPABASE_URL manquant"}
    try:
        resp = httpx.get(f"{SUPABASE_URL}/auth/v1/health", headers={"apikey": SUPABASE_ANON_KEY}, timeout=5)
        return {"ok": 200 <= resp.status_code < 300, "status": resp.status_code}
    except httpx.HTTPError as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info() -> Dict[str, Any]:
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    info: Dict[str, Any] = {
        "hostname": parsed.hostname if parsed else None,
        "auth": _check_auth(),
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_supabase()
        for t in CHECKED_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    except Exception as e:
        logger.exception("health.supabase failed")
        info["error"] = str(e)
    return info
