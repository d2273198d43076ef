from typing import Optional, Dict, Any, List
import logging
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# --- Auth (supabase.auth.*) ---

def auth_sign_in_password(email: str, password: str):
    """Wrapper Supabase Auth: connexion par email/mot de passe (GoTrue)."""
    return supabase_client.get_supabase().auth.sign_in_with_password({"email": email, "password": password})

def auth_sign_up_account(email: str, password: str, options_data: Optional[Dict[str, Any]] = None):
    """Wrapper Supabase Auth: inscription (options.data = user_metadata, ex. full_name)."""
    credentials: Dict[str, Any] = {"email": email, "password": password}
    if options_data:
        credentials["options"] = {"data": options_data}
    return supabase_client.get_supabase().auth.sign_up(credentials)

def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l'utilisateur depuis supabase.auth.get_user(access_token)."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    return user or {}

# --- Table user_roles ---

def fetch_user_roles(user_id: str) -> List[str]:
    """Rôles de l'utilisateur (admin, client, livreur). [] si aucun ou en cas d'erreur."""
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("user_roles")
            .select("role")
            .eq("user_id", user_id)
            .execute()
        )
        return [str(r.get("role")) for r in (res.data or []) if r.get("role")]
    except Exception:
        logger.exception("auth.repository.fetch_user_roles failed user_id=%s", user_id)
        return []

def insert_user_role(user_id: str, role: str) -> bool:
    try:
        supabase_client.get_service_supabase().table("user_roles").insert({"user_id": user_id, "role": role}).execute()
        return True
    except Exception:
        logger.exception("auth.repository.insert_user_role failed user_id=%s role=%s", user_id, role)
        return False
