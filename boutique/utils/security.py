from fastapi import Request, HTTPException, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from typing import Optional, List
from boutique.config import COOKIE_SECURE

COOKIE_NAME = "sb_access"
ADMIN_ROLE = "admin"


class CurrentUser(BaseModel):
    """Contexte utilisateur résolu à chaque requête et passé explicitement aux services."""

    id: str
    email: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    token: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles


def set_session_cookie(response: Response, access_token: str):
    response.set_cookie(
        key=COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="Lax",
        max_age=60 * 60,
        path="/",
    )

def clear_session_cookie(response: Response):
    response.delete_cookie(COOKIE_NAME, path="/")

def extract_token(request: Request) -> Optional[str]:
    # Priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_current_user(request: Request) -> CurrentUser:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    try:
        # Délégué au service Auth (GoTrue + rôles user_roles)
        from boutique.auth import service as auth_service
        return auth_service.get_user_from_token(token)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

def require_user(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    return user

def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
