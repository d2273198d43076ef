import os
import pytest
from itertools import count
from typing import Generator, Dict, Any, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock
import stripe

# Pas de Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from boutique.app import app as fastapi_app
from boutique import config
from boutique.cart.models import CartItem
from boutique.catalog.models import Product
from boutique.errors import ServiceIndisponible
from boutique.orders.models import Order, OrderItem
from boutique.utils.security import CurrentUser, require_user, require_admin

TEST_USER = CurrentUser(id="test-user", email="test@example.com", roles=["client"], token="fake-token")
ADMIN_USER = CurrentUser(id="admin-user-id", email="admin@example.com", roles=["admin"], token="admin-token")

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def user() -> CurrentUser:
    return TEST_USER

@pytest.fixture
def admin() -> CurrentUser:
    return ADMIN_USER

@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: ADMIN_USER
    yield client
    app.dependency_overrides.pop(require_admin, None)

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: TEST_USER
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

# Jamais de vraie clé Stripe: les tests qui en ont besoin utilisent fake_stripe
@pytest.fixture(autouse=True)
def _stripe_unconfigured(monkeypatch):
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "", raising=True)
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "", raising=True)

# Aucun accès Supabase réel
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("boutique.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("boutique.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr("boutique.infra.supabase_client.get_user_supabase", lambda token: MagicMock())
    monkeypatch.setattr("boutique.health.service.health_supabase_info", lambda: {"connect_ok": True, "tables": {}})


class FakeStore:
    """
    Base en mémoire branchée à la place des repositories catalog / cart / orders.
    transition_order reproduit la mise à jour conditionnelle (WHERE sur l'état attendu).
    """

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.carts: Dict[str, List[Dict[str, Any]]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.order_items: Dict[str, List[Dict[str, Any]]] = {}
        self.decrements: List[tuple] = []
        self.cleared: List[str] = []
        self.fail_items_insert = False
        self._ids = count(1)

    # --- données de test ---

    def add_product(self, product_id: str, name: str, price: str, stock: int, is_available: bool = True) -> None:
        self.products[product_id] = {
            "id": product_id,
            "name": name,
            "price": price,
            "stock_quantity": stock,
            "is_available": is_available,
            "category_id": "cat-1",
        }

    def put_in_cart(self, user_id: str, product_id: str, quantity: int) -> None:
        line = {"id": f"ci-{next(self._ids)}", "user_id": user_id, "product_id": product_id, "quantity": quantity}
        self.carts.setdefault(user_id, []).append(line)

    def stock(self, product_id: str) -> int:
        return self.products[product_id]["stock_quantity"]

    def order_row(self, order_id: str) -> Dict[str, Any]:
        return self.orders[order_id]

    # --- catalog.repository ---

    def get_product(self, product_id: str) -> Optional[Product]:
        row = self.products.get(product_id)
        return Product.from_row(row) if row else None

    def get_products_by_ids(self, ids) -> Dict[str, Product]:
        return {i: Product.from_row(self.products[i]) for i in ids if i in self.products}

    def list_products(self, only_available: bool = True) -> List[Product]:
        rows = [r for r in self.products.values() if r["is_available"] or not only_available]
        return [Product.from_row(r) for r in rows]

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        row = self.products.get(product_id)
        if row is None or row["stock_quantity"] < quantity:
            return False
        row["stock_quantity"] -= quantity
        self.decrements.append((product_id, quantity))
        return True

    # --- cart.repository ---

    def list_cart_items(self, user_id: str, user_token: Optional[str] = None) -> List[CartItem]:
        items = []
        for line in self.carts.get(user_id, []):
            product = self.products.get(line["product_id"])
            items.append(CartItem.from_row(dict(line, products=dict(product) if product else None)))
        return items

    def clear_cart(self, user_id: str) -> bool:
        self.carts.pop(user_id, None)
        self.cleared.append(user_id)
        return True

    # --- orders.repository ---

    def insert_order(self, payload: Dict[str, Any]) -> Order:
        order_id = f"order-{next(self._ids)}"
        row = dict(payload, id=order_id)
        self.orders[order_id] = row
        return Order.from_row(row)

    def insert_order_items(self, order_id: str, items: List[Dict[str, Any]]) -> List[OrderItem]:
        if self.fail_items_insert:
            raise ServiceIndisponible()
        rows = [dict(it, order_id=order_id, id=f"oi-{next(self._ids)}") for it in items]
        self.order_items[order_id] = rows
        return [OrderItem.from_row(r) for r in rows]

    def delete_order(self, order_id: str) -> bool:
        self.order_items.pop(order_id, None)
        self.orders.pop(order_id, None)
        return True

    def get_order(self, order_id: str) -> Optional[Order]:
        row = self.orders.get(order_id)
        if row is None:
            return None
        # Ordre de stockage inversé: les lectures ne doivent pas en dépendre
        items = [dict(i) for i in reversed(self.order_items.get(order_id, []))]
        return Order.from_row(dict(row, order_items=items))

    def list_user_orders(self, user_id: str) -> List[Order]:
        return [self.get_order(oid) for oid, row in self.orders.items() if row["user_id"] == user_id]

    def transition_order(self, order_id: str, changes: Dict[str, Any], expected: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = self.orders.get(order_id)
        if row is None or any(row.get(k) != v for k, v in expected.items()):
            return None
        row.update(changes)
        return dict(row)


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    fake = FakeStore()
    for name in ("get_product", "get_products_by_ids", "list_products", "decrement_stock"):
        monkeypatch.setattr(f"boutique.catalog.repository.{name}", getattr(fake, name))
    for name in ("list_cart_items", "clear_cart"):
        monkeypatch.setattr(f"boutique.cart.repository.{name}", getattr(fake, name))
    for name in ("insert_order", "insert_order_items", "delete_order", "get_order", "list_user_orders", "transition_order"):
        monkeypatch.setattr(f"boutique.orders.repository.{name}", getattr(fake, name))
    return fake


class FakeStripe:
    """PaymentIntents en mémoire, au format normalisé de stripe_client.intent_to_dict."""

    DECLINED_METHOD = "pm_card_chargeDeclined"

    def __init__(self):
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.idempotency_keys: List[Optional[str]] = []
        self.fail_create = False

    def create_payment_intent(self, *, amount, currency, metadata, idempotency_key=None):
        if self.fail_create:
            raise stripe.APIConnectionError("Network error")
        intent_id = f"pi_{len(self.intents) + 1}"
        self.intents[intent_id] = {
            "id": intent_id,
            "status": "requires_payment_method",
            "amount": amount,
            "currency": currency,
            "client_secret": f"{intent_id}_secret_x",
            "metadata": dict(metadata),
            "last_payment_error": None,
        }
        self.idempotency_keys.append(idempotency_key)
        return dict(self.intents[intent_id])

    def retrieve_payment_intent(self, intent_id):
        if intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{intent_id}'", "intent")
        return dict(self.intents[intent_id])

    def confirm_payment_intent(self, intent_id, payment_method):
        if payment_method == self.DECLINED_METHOD:
            raise stripe.CardError("Votre carte a été refusée.", None, "card_declined")
        self.intents[intent_id]["status"] = "succeeded"
        return dict(self.intents[intent_id])

    def set_status(self, intent_id, status):
        self.intents[intent_id]["status"] = status

    def event(self, event_type: str, intent_id: str) -> Dict[str, Any]:
        return {"id": f"evt_{intent_id}", "type": event_type, "object": dict(self.intents[intent_id])}


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_fake", raising=True)
    monkeypatch.setattr(config, "STRIPE_PUBLIC_KEY", "pk_test_fake", raising=True)
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", "whsec_fake", raising=True)
    for name in ("create_payment_intent", "retrieve_payment_intent", "confirm_payment_intent"):
        monkeypatch.setattr(f"boutique.payments.stripe_client.{name}", getattr(fake, name))
    return fake
