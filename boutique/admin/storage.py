"""
Upload des images produits vers Supabase Storage (bucket product-images).
- Types acceptés: JPEG, PNG, WEBP ; taille max MAX_IMAGE_BYTES (5 Mo)
- Nom de fichier aléatoire <token>_<epoch ms>.<ext>, retourne l'URL publique
"""
import logging
import secrets
import time
from typing import Optional

from fastapi import HTTPException

import boutique.infra.supabase_client as supabase_client
from boutique.config import ALLOWED_IMAGE_TYPES, MAX_IMAGE_BYTES, PRODUCT_IMAGES_BUCKET
from boutique.errors import ServiceIndisponible

logger = logging.getLogger(__name__)

def validate_image(content_type: Optional[str], size: int) -> str:
    """Retourne l'extension à utiliser, ou lève 400/413."""
    ext = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
    if not ext:
        raise HTTPException(status_code=400, detail="Format non supporté (JPEG, PNG ou WEBP uniquement)")
    if size <= 0:
        raise HTTPException(status_code=400, detail="Fichier vide")
    if size > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Image trop volumineuse (5 Mo maximum)")
    return ext

def make_object_name(ext: str) -> str:
    return f"{secrets.token_hex(6)}_{int(time.time() * 1000)}.{ext}"

def upload_product_image(data: bytes, content_type: Optional[str]) -> str:
    ext = validate_image(content_type, len(data or b""))
    path = make_object_name(ext)
    try:
        bucket = supabase_client.get_service_supabase().storage.from_(PRODUCT_IMAGES_BUCKET)
        bucket.upload(path=path, file=data, file_options={"content-type": content_type, "upsert": "false"})
        url = bucket.get_public_url(path)
    except Exception:
        logger.exception("admin.storage.upload_product_image failed path=%s", path)
        raise ServiceIndisponible("Erreur lors de l'upload de l'image")
    logger.info("admin.storage uploaded path=%s size=%s", path, len(data))
    return url
