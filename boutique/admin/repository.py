"""
Accès aux données du back-office (service-role, RLS contourné).
Lectures: [] / 0 / None en cas d'erreur. Écritures: None / False en cas d'erreur, la cause est loggée.
"""
from decimal import Decimal
from typing import List, Optional, Dict, Any
import logging
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def _first(res) -> Optional[dict]:
    data = getattr(res, "data", None)
    if isinstance(data, list) and data:
        return data[0]
    if isinstance(data, dict):
        return data
    return None

# module boutique.admin.repository
def count_table_rows(table_name: str) -> int:
    """
    Compte les lignes d'une table via Supabase.
    Utilise count='exact' si disponible, sinon len(data).
    """
    try:
        res = supabase_client.get_service_supabase().table(table_name).select("id", count="exact").execute()
        if getattr(res, "count", None) is not None:
            return int(res.count)
        return len(res.data or [])
    except Exception:
        logger.exception("admin.repository.count_table_rows failed table=%s", table_name)
        return 0

def sum_paid_revenue() -> Decimal:
    """Chiffre d'affaires: somme des total_amount des commandes payées."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("total_amount")
            .eq("payment_status", "paid")
            .execute()
        )
        return sum((Decimal(str(r.get("total_amount") or 0)) for r in (res.data or [])), Decimal("0"))
    except Exception:
        logger.exception("admin.repository.sum_paid_revenue failed")
        return Decimal("0")

def fetch_admin_orders(limit: int = 100, status: Optional[str] = None) -> List[dict]:
    """
    Commandes récentes avec leurs lignes.
    orders.user_id référence auth.users et non profiles: pas d'embed PostgREST,
    les profils sont chargés à part via fetch_profiles_by_ids.
    """
    try:
        query = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select("*, order_items(*, products(name))")
        )
        if status:
            query = query.eq("status", status)
        res = query.order("created_at", desc=True).limit(limit).execute()
        return res.data or []
    except Exception:
        logger.exception("admin.repository.fetch_admin_orders failed")
        return []

# --- Produits / catégories ---

def insert_row(table: str, data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = supabase_client.get_service_supabase().table(table).insert(data).execute()
        return _first(res)
    except Exception:
        logger.exception("admin.repository.insert_row failed table=%s", table)
        return None

def update_row(table: str, row_id: str, data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = supabase_client.get_service_supabase().table(table).update(data).eq("id", row_id).execute()
        return _first(res)
    except Exception:
        logger.exception("admin.repository.update_row failed table=%s id=%s", table, row_id)
        return None

def delete_row(table: str, row_id: str) -> bool:
    try:
        supabase_client.get_service_supabase().table(table).delete().eq("id", row_id).execute()
        return True
    except Exception:
        logger.exception("admin.repository.delete_row failed table=%s id=%s", table, row_id)
        return False

# --- Utilisateurs / rôles ---

def fetch_profiles(limit: int = 200) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("profiles")
            .select("id, email, full_name, phone, created_at")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("admin.repository.fetch_profiles failed")
        return []

def fetch_profiles_by_ids(user_ids: List[str]) -> Dict[str, dict]:
    """Profils (email, nom) indexés par id, en une seule requête."""
    if not user_ids:
        return {}
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("profiles")
            .select("id, email, full_name")
            .in_("id", user_ids)
            .execute()
        )
    except Exception:
        logger.exception("admin.repository.fetch_profiles_by_ids failed")
        return {}
    return {str(row.get("id")): row for row in res.data or []}

def fetch_roles_by_user(user_ids: List[str]) -> Dict[str, List[str]]:
    if not user_ids:
        return {}
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("user_roles")
            .select("user_id, role")
            .in_("user_id", user_ids)
            .execute()
        )
    except Exception:
        logger.exception("admin.repository.fetch_roles_by_user failed")
        return {}
    roles: Dict[str, List[str]] = {}
    for row in res.data or []:
        roles.setdefault(str(row.get("user_id")), []).append(str(row.get("role")))
    return roles

def replace_user_role(user_id: str, role: str) -> bool:
    """Un seul rôle par utilisateur: suppression des lignes existantes puis insertion."""
    try:
        client = supabase_client.get_service_supabase()
        client.table("user_roles").delete().eq("user_id", user_id).execute()
        client.table("user_roles").insert({"user_id": user_id, "role": role}).execute()
        return True
    except Exception:
        logger.exception("admin.repository.replace_user_role failed user_id=%s role=%s", user_id, role)
        return False

# --- Journal d'activité ---

def insert_admin_log(admin_id: str, action: str, entity_type: str, entity_id: Optional[str], details: Optional[Dict[str, Any]] = None) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table("admin_logs")
            .insert({
                "admin_id": admin_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "details": details or {},
            })
            .execute()
        )
        return True
    except Exception:
        logger.exception("admin.repository.insert_admin_log failed action=%s entity=%s:%s", action, entity_type, entity_id)
        return False

def fetch_admin_logs(limit: int = 100) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("admin_logs")
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("admin.repository.fetch_admin_logs failed")
        return []
