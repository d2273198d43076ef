from typing import Any, Dict, Optional
from fastapi import HTTPException
from pydantic import BaseModel, field_validator

from boutique.errors import ServiceIndisponible
from boutique.profiles import repository
from boutique.utils.security import CurrentUser
from boutique.utils.validators import validate_full_name, validate_phone_fr


class ProfileUpdate(BaseModel):
    full_name: str
    phone: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def _full_name(cls, v: str) -> str:
        return validate_full_name(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_fr(v)


def get_profile(user: CurrentUser) -> Dict[str, Any]:
    profile = repository.get_profile(user.id, user.token)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profil introuvable")
    profile["roles"] = user.roles
    return profile

def update_profile(user: CurrentUser, data: ProfileUpdate) -> Dict[str, Any]:
    updated = repository.update_profile(user.id, {"full_name": data.full_name, "phone": data.phone}, user.token)
    if updated is None:
        raise ServiceIndisponible()
    return updated
