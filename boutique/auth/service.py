from typing import Optional
import logging

from boutique.auth import repository
from boutique.auth.models import AuthResponse, build_user_dict, build_session_dict, handle_exception
from boutique.profiles import repository as profiles_repository
from boutique.utils.security import CurrentUser

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "client"

# --- Cas d'usage Auth exposés ---

def login(email: str, password: str) -> AuthResponse:
    """Connexion:
    - Délègue à supabase.auth.sign_in_with_password via repository
    - Joint les rôles de user_roles à l'utilisateur renvoyé
    """
    try:
        res = repository.auth_sign_in_password((email or "").strip(), password)
    except Exception as e:
        msg = str(e).lower()
        if "invalid" in msg or "credentials" in msg or "not confirmed" in msg:
            return AuthResponse(False, error="Identifiants invalides ou email non confirmé")
        return handle_exception("sign_in", e)

    sess = getattr(res, "session", None)
    user = getattr(res, "user", None)
    if not sess or not getattr(sess, "access_token", None):
        return AuthResponse(False, error="Identifiants invalides ou email non confirmé")
    roles = repository.fetch_user_roles(getattr(user, "id", None))
    return AuthResponse(True, user=build_user_dict(user, roles), session=build_session_dict(sess))

def signup(email: str, password: str, full_name: Optional[str] = None) -> AuthResponse:
    """Inscription:
    - full_name transmis en user_metadata
    - Best-effort: profil applicatif (profiles) et rôle 'client' (user_roles)
    - Sans session (confirmation email requise): succès avec message
    """
    email = (email or "").strip()
    try:
        res = repository.auth_sign_up_account(
            email=email,
            password=password,
            options_data={"full_name": full_name} if full_name else None,
        )
    except Exception as e:
        msg = str(e).lower()
        if any(k in msg for k in ["already", "registered", "exists", "23505"]):
            return AuthResponse(False, error="Utilisateur existe déjà")
        return handle_exception("sign_up", e)

    user = getattr(res, "user", None)
    user_id = getattr(user, "id", None)
    if user_id:
        profiles_repository.upsert_profile(user_id, email, full_name)
        if not repository.fetch_user_roles(user_id):
            repository.insert_user_role(user_id, DEFAULT_ROLE)

    sess = getattr(res, "session", None)
    if sess and getattr(sess, "access_token", None):
        return AuthResponse(True, user=build_user_dict(user, [DEFAULT_ROLE]), session=build_session_dict(sess))
    return AuthResponse(True, error="Inscription réussie, vérifiez votre email")

# --- Intégration sécurité ---

def get_user_from_token(access_token: str) -> CurrentUser:
    """Construit le contexte de requête: utilisateur GoTrue + rôles de user_roles."""
    raw = repository.get_user_from_access_token(access_token)
    uid = raw.get("id")
    if not uid:
        raise ValueError("Utilisateur introuvable pour ce token")
    roles = repository.fetch_user_roles(str(uid))
    return CurrentUser(id=str(uid), email=raw.get("email"), roles=roles, token=access_token)
