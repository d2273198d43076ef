from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from boutique.catalog.models import Product


class CartLine(BaseModel):
    """Ligne de panier minimale: entrée de l'initiation de commande."""

    product_id: str
    quantity: int = Field(ge=1)


class CartItem(CartLine):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    product: Optional[Product] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CartItem":
        data = dict(row)
        product = data.pop("products", None)
        if isinstance(product, dict):
            data["product"] = Product.from_row(product)
        return cls.model_validate(data)

    @property
    def line_total(self) -> Decimal:
        if self.product is None:
            return Decimal("0")
        return self.product.price * self.quantity


class CartAdd(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1, le=99)


class CartQuantity(BaseModel):
    quantity: int = Field(ge=1, le=99)
