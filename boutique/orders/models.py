"""
Commandes: statuts, machines à états et enregistrements typés.

status:          pending -> processing -> shipped -> delivered
                 pending | processing | shipped -> cancelled
payment_status:  pending -> paid | failed ; failed -> paid (succès tardif) ; paid -> refunded
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from boutique.config import DEFAULT_SHIPPING_COUNTRY


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_STATUS_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

TERMINAL_ORDER_STATUSES = frozenset(s for s, nxt in ORDER_STATUS_TRANSITIONS.items() if not nxt)


def can_transition_status(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_STATUS_TRANSITIONS.get(current, frozenset())


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_STATUS_TRANSITIONS.get(current, frozenset())


class OrderItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    order_id: Optional[str] = None
    product_id: str
    quantity: int = Field(ge=1)
    unit_price: Decimal
    product_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderItem":
        data = dict(row)
        product = data.pop("products", None)
        if isinstance(product, dict):
            data["product_name"] = product.get("name")
        return cls.model_validate(data)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_reference: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    items: List[OrderItem] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Order":
        data = dict(row)
        items = data.pop("order_items", None)
        profile = data.pop("profiles", None)
        if isinstance(items, list):
            data["items"] = [OrderItem.from_row(i) for i in items]
        if isinstance(profile, dict):
            data["customer_email"] = profile.get("email")
            data["customer_name"] = profile.get("full_name")
        return cls.model_validate(data)

    @property
    def items_total(self) -> Decimal:
        return sum((i.line_total for i in self.items), Decimal("0"))


class ShippingInfo(BaseModel):
    address: str = Field(min_length=3, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    postal_code: str = Field(min_length=3, max_length=12)
    country: str = Field(default=DEFAULT_SHIPPING_COUNTRY, min_length=2, max_length=60)

    @field_validator("address", "city", "postal_code", "country")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Champ requis")
        return v

    def to_row(self) -> Dict[str, str]:
        return {
            "shipping_address": self.address,
            "shipping_city": self.city,
            "shipping_postal_code": self.postal_code,
            "shipping_country": self.country,
        }


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class FinalizeOutcome(str, Enum):
    FINALIZED = "finalized"
    ALREADY_FINALIZED = "already_finalized"
    PAID_ON_CANCELLED = "paid_on_cancelled"


class FinalizeResult(BaseModel):
    outcome: FinalizeOutcome
    order: Order
