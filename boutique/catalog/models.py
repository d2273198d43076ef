"""
Enregistrements typés du catalogue (produits, catégories) et schémas d'écriture du back-office.
Les lignes Supabase sont validées ici, à la frontière du repository.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class Product(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    stock_quantity: int = Field(default=0, ge=0)
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    is_available: bool = True
    image_url: Optional[str] = None
    era: Optional[str] = None
    original_owner: Optional[str] = None
    historical_info: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        data = dict(row)
        category = data.pop("categories", None)
        if isinstance(category, dict):
            data["category_name"] = category.get("name")
        return cls.model_validate(data)

    def matches(self, search: str) -> bool:
        needle = search.lower()
        return needle in self.name.lower() or needle in (self.original_owner or "").lower()


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class ProductIn(BaseModel):
    """Formulaire produit (création)."""

    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    stock_quantity: int = Field(ge=0)
    category_id: str = Field(min_length=1)
    is_available: bool = True
    image_url: Optional[str] = None
    era: Optional[str] = None
    original_owner: Optional[str] = None
    historical_info: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Le nom est requis")
        return v

    @field_validator("description", "image_url", "era", "original_owner", "historical_info")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    def to_row(self) -> Dict[str, Any]:
        data = self.model_dump()
        data["price"] = str(self.price)
        return data


class ProductUpdate(BaseModel):
    """Mise à jour partielle: seuls les champs fournis sont écrits."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    stock_quantity: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[str] = Field(default=None, min_length=1)
    is_available: Optional[bool] = None
    image_url: Optional[str] = None
    era: Optional[str] = None
    original_owner: Optional[str] = None
    historical_info: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        if data.get("price") is not None:
            data["price"] = str(data["price"])
        return data


class CategoryIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {"name": self.name.strip(), "description": _strip_optional(self.description)}
