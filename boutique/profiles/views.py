from fastapi import APIRouter, Depends

from boutique.profiles import service as profiles_service
from boutique.profiles.service import ProfileUpdate
from boutique.utils.security import CurrentUser, require_user

router = APIRouter(prefix="/api/v1/profile", tags=["Profil"])

@router.get("")
def get_my_profile(user: CurrentUser = Depends(require_user)):
    return profiles_service.get_profile(user)

@router.put("")
def update_my_profile(body: ProfileUpdate, user: CurrentUser = Depends(require_user)):
    """Nom complet (2 à 100 caractères) et téléphone optionnel au format français."""
    return profiles_service.update_profile(user, body)
