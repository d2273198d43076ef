"""
Clients Supabase partagés.
- get_supabase: client anon (lecture publique du catalogue, GoTrue)
- get_service_supabase: client service-role (webhook, back-office, finalisation des commandes)
- get_user_supabase: client anon authentifié par le JWT de l'utilisateur (RLS actif)
"""
from typing import Optional
from supabase import create_client, Client
from boutique.config import SUPABASE_URL, SUPABASE_ANON_KEY, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)
    return _supabase

def get_service_supabase() -> Client:
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def get_user_supabase(user_token: str) -> Client:
    """
    Client éphémère au nom de l'utilisateur: les policies RLS s'appliquent.
    Une nouvelle instance par appel pour ne pas polluer le client global.
    """
    if not user_token:
        raise ValueError("user_token is required")
    client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)
    client.postgrest.auth(user_token)
    return client

def scoped_client(user_token: Optional[str] = None) -> Client:
    """Client utilisateur si un token est fourni, sinon service-role (chemins serveur sans session)."""
    if user_token:
        return get_user_supabase(user_token)
    return get_service_supabase()
