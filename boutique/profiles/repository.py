"""Couche d'accès aux données (Supabase) pour les profils clients (table profiles).
Les exceptions sont « catchées » et transformées en valeurs neutres (None, False).
"""
from typing import Any, Dict, Optional
import logging
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, email, full_name, phone, created_at"

def get_profile(user_id: str, user_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
    if not user_id:
        return None
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("profiles")
            .select(PROFILE_COLUMNS)
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("profiles.repository.get_profile failed id=%s", user_id)
        return None

def update_profile(user_id: str, data: Dict[str, Any], user_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.scoped_client(user_token)
            .table("profiles")
            .update(data)
            .eq("id", user_id)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("profiles.repository.update_profile failed id=%s", user_id)
        return None

def upsert_profile(user_id: str, email: Optional[str], full_name: Optional[str] = None) -> bool:
    """Crée ou complète le profil via la clé de service (inscription)."""
    if not user_id:
        return False
    payload: Dict[str, Any] = {"id": user_id, "email": email}
    if full_name:
        payload["full_name"] = full_name
    try:
        supabase_client.get_service_supabase().table("profiles").upsert(payload).execute()
        return True
    except Exception:
        logger.exception("profiles.repository.upsert_profile failed id=%s", user_id)
        return False
