from fastapi import APIRouter, HTTPException, Depends, Response

from boutique.auth import service as auth_service
from boutique.auth.models import LoginRequest, SignupRequest
from boutique.utils.rate_limit import optional_rate_limit
from boutique.utils.security import CurrentUser, require_user, set_session_cookie, clear_session_cookie

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

@api_router.post("/login", dependencies=[Depends(optional_rate_limit(times=5, seconds=60))])
def api_login(req: LoginRequest, response: Response):
    """Connexion (API JSON).
    - Rate limit 5 requêtes / 60 s
    - Pose le cookie de session (sb_access) et retourne {access_token, token_type, user}
    """
    result = auth_service.login(req.email, req.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error or "Identifiants invalides")
    if result.access_token:
        set_session_cookie(response, result.access_token)
    return {"access_token": result.access_token, "token_type": "bearer", "user": result.user}

@api_router.post("/signup", status_code=201, dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_signup(req: SignupRequest, response: Response):
    result = auth_service.signup(req.email, req.password, req.full_name)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error or "Erreur inscription")
    if result.access_token:
        set_session_cookie(response, result.access_token)
        return {"access_token": result.access_token, "token_type": "bearer", "user": result.user}
    return {"message": result.error or "Inscription réussie, vérifiez votre email"}

@api_router.get("/me")
def api_me(user: CurrentUser = Depends(require_user)):
    """Utilisateur courant (id, email, rôles). Le token n'est jamais renvoyé."""
    return {"id": user.id, "email": user.email, "roles": user.roles, "is_admin": user.is_admin}

@api_router.post("/logout")
def api_logout(response: Response):
    clear_session_cookie(response)
    return {"message": "Déconnexion réussie"}
