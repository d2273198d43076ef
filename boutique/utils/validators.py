import re
from typing import Optional

PHONE_FR_RE = re.compile(r'^(\+33|0)[1-9](\d{8})$')

def validate_password_strength(v: str) -> str:
    if not re.search(r'[A-Z]', v):
        raise ValueError('Le mot de passe doit contenir au moins une majuscule')
    if not re.search(r'[a-z]', v):
        raise ValueError('Le mot de passe doit contenir au moins une minuscule')
    if not re.search(r'\d', v):
        raise ValueError('Le mot de passe doit contenir au moins un chiffre')
    return v

def validate_phone_fr(v: Optional[str]) -> Optional[str]:
    """Téléphone optionnel; espaces et points ignorés avant contrôle (format français)."""
    if v is None:
        return None
    cleaned = re.sub(r'[\s.]', '', v)
    if not cleaned:
        return None
    if not PHONE_FR_RE.match(cleaned):
        raise ValueError('Numéro de téléphone invalide (format français attendu)')
    return cleaned

def validate_full_name(v: str) -> str:
    v = (v or "").strip()
    if len(v) < 2:
        raise ValueError('Le nom doit contenir au moins 2 caractères')
    if len(v) > 100:
        raise ValueError('Le nom ne peut pas dépasser 100 caractères')
    return v
